"""
Module registry - Discovery, enable state and hook dispatch.

Modules are directories under a base directory (plus an optional
``extramodules`` directory that takes precedence). Each module decides
whether it is enabled through configuration or marker files:

    <module>/enable            always enabled
    <module>/disable           always disabled
    <module>/default-enable    enabled unless a ``disable`` marker exists
    <module>/default-disable   disabled unless an ``enable`` marker exists

Hooks live in ``<module>/hooks/hook_<name>.py`` and expose a function
``<module>_hook_<name>(data)`` that may mutate ``data`` in place.
"""

from __future__ import annotations

import importlib
import importlib.util
import logging
from pathlib import Path
from types import ModuleType
from typing import Any, Optional
from urllib.parse import urlencode

from samlsession.faults import Fault, FaultDomain, Severity

logger = logging.getLogger("samlsession.modules")


# ============================================================================
# Module Faults
# ============================================================================

class ModuleFault(Fault):
    """Base class for module system faults."""
    
    domain = FaultDomain.MODULES


class ModuleDirectoryNotFoundFault(ModuleFault):
    code = "MODULE_DIRECTORY_NOT_FOUND"
    message = "Module directory not found"
    severity = Severity.FATAL
    
    def __init__(self, path: str, **kwargs):
        super().__init__(**kwargs)
        self.path = path
        self.message = f'Module directory not found at "{path}".'


class InvalidModuleConfigFault(ModuleFault):
    domain = FaultDomain.CONFIG
    code = "MODULE_ENABLE_INVALID"
    message = "Invalid module.enable value"
    
    def __init__(self, module: str, **kwargs):
        super().__init__(**kwargs)
        self.module = module
        self.message = f"Invalid module.enable value for the module {module}"


class ModuleResolutionFault(ModuleFault):
    code = "MODULE_RESOLUTION_FAILED"
    message = "Could not resolve module class"
    
    def __init__(self, identifier: str, reason: str, **kwargs):
        super().__init__(**kwargs)
        self.identifier = identifier
        self.message = f"Could not resolve '{identifier}': {reason}"


class HookFault(ModuleFault):
    code = "MODULE_HOOK_INVALID"
    message = "Invalid module hook"
    
    def __init__(self, module: str, hook: str, reason: str, **kwargs):
        super().__init__(**kwargs)
        self.module = module
        self.hook = hook
        self.message = f"Hook '{hook}' of module {module}: {reason}"


# ============================================================================
# ModuleRegistry
# ============================================================================

class ModuleRegistry:
    """
    Enumerates installed modules and dispatches hooks to enabled ones.
    
    Args:
        config: Configuration view (``extramodules``, ``module.enable``,
            ``baseurlpath``)
        base_dir: Built-in modules directory
        strict: Log an error for modules without a default marker
            (development-time lint)
    
    Example:
        >>> registry = ModuleRegistry(config, base_dir="modules")
        >>> data = registry.call_hooks("frontpage", {"links": []})
    """
    
    def __init__(self, config, base_dir: str | Path, strict: bool = False):
        self.config = config
        self.base_dir = Path(base_dir)
        self.strict = strict
        self._hook_cache: dict[Path, ModuleType] = {}
    
    @property
    def extra_dir(self) -> Optional[Path]:
        extra = self.config.get_string("extramodules", "")
        return Path(extra) if extra else None
    
    def module_dir(self, module: str) -> Path:
        """Base directory of a module; the extra modules directory wins."""
        extra = self.extra_dir
        if extra is not None and (extra / module).is_dir():
            return extra / module
        return self.base_dir / module
    
    def is_enabled(self, module: str) -> bool:
        """
        Determine whether a module is enabled.
        
        Raises:
            InvalidModuleConfigFault: ``module.enable`` entry is not a bool
        """
        module_dir = self.module_dir(module)
        
        if not module_dir.is_dir():
            return False
        
        module_enable = self.config.get_mapping("module.enable", {})
        if module in module_enable:
            value = module_enable[module]
            if isinstance(value, bool):
                return value
            raise InvalidModuleConfigFault(module)
        
        if (
            self.strict
            and not (module_dir / "default-enable").exists()
            and not (module_dir / "default-disable").exists()
        ):
            logger.error(f"Missing default-enable or default-disable file for the module {module}")
        
        if (module_dir / "enable").exists():
            return True
        
        if not (module_dir / "disable").exists() and (module_dir / "default-enable").exists():
            return True
        
        return False
    
    def get_modules(self) -> list[str]:
        """
        Available modules, extra directory first, without duplicates.
        
        Raises:
            ModuleDirectoryNotFoundFault: Built-in module directory missing
        """
        modules: list[str] = []
        
        extra = self.extra_dir
        if extra is not None and extra.is_dir():
            self._scan_modules_dir(extra, modules)
        
        if not self.base_dir.is_dir():
            raise ModuleDirectoryNotFoundFault(str(self.base_dir))
        self._scan_modules_dir(self.base_dir, modules)
        
        return modules
    
    @staticmethod
    def _scan_modules_dir(path: Path, modules: list[str]) -> None:
        for entry in sorted(path.iterdir()):
            if entry.name.startswith(".") or not entry.is_dir():
                continue
            if entry.name not in modules:
                modules.append(entry.name)
    
    def resolve_class(self, identifier: str, type_: str, subclass: Optional[type] = None) -> type:
        """
        Resolve ``"<module>:<Class>"`` or a dotted import path to a class.
        
        ``<module>:<Class>`` loads ``<module_dir>/lib/<type_>.py`` and takes
        its ``<Class>`` attribute.
        
        Raises:
            ModuleResolutionFault: Class missing or not a subclass
        """
        module_name, sep, class_name = identifier.partition(":")
        
        if sep:
            path = self.module_dir(module_name) / "lib" / f"{type_}.py"
            if not path.exists():
                raise ModuleResolutionFault(identifier, f"No file '{path}'.")
            source = self._load_file(f"samlsession_mod_{module_name}_{type_}", path)
        else:
            import_path, _, class_name = identifier.rpartition(".")
            if not import_path:
                raise ModuleResolutionFault(identifier, "Expected '<module>:<class>' or a dotted path.")
            try:
                source = importlib.import_module(import_path)
            except ImportError as e:
                raise ModuleResolutionFault(identifier, str(e)) from e
        
        cls = getattr(source, class_name, None)
        if not isinstance(cls, type):
            raise ModuleResolutionFault(identifier, f"No class named '{class_name}'.")
        if subclass is not None and not issubclass(cls, subclass):
            raise ModuleResolutionFault(
                identifier, f"The class '{class_name}' isn't a subclass of '{subclass.__name__}'."
            )
        return cls
    
    def module_url(self, resource: str, parameters: Optional[dict[str, Any]] = None) -> str:
        """
        URL of a resource under ``<module>/www/``.
        
        Args:
            resource: ``<module name>/<resource>`` (no leading slash)
            parameters: Extra query parameters
        """
        if resource.startswith("/"):
            raise ValueError("Module resource must not start with '/'")
        
        url = self.config.base_url() + "module.py/" + resource
        if parameters:
            url += ("&" if "?" in url else "?") + urlencode(parameters)
        return url
    
    def call_hooks(self, hook: str, data: Any = None) -> Any:
        """
        Call a hook in all enabled modules, in sorted module order.
        
        Args:
            hook: Hook name
            data: Mutable data passed to every hook function
            
        Returns:
            ``data`` after all hooks ran
            
        Raises:
            HookFault: Hook file lacks the expected function
        """
        for module in sorted(self.get_modules()):
            if not self.is_enabled(module):
                continue
            
            hook_file = self.module_dir(module) / "hooks" / f"hook_{hook}.py"
            if not hook_file.exists():
                continue
            
            hook_module = self._hook_cache.get(hook_file)
            if hook_module is None:
                hook_module = self._load_file(f"samlsession_hook_{module}_{hook}", hook_file)
                self._hook_cache[hook_file] = hook_module
            
            func_name = f"{module}_hook_{hook}"
            hook_func = getattr(hook_module, func_name, None)
            if not callable(hook_func):
                raise HookFault(module, hook, f"missing function {func_name}()")
            
            logger.debug(f"Calling hook {hook} of module {module}")
            hook_func(data)
        
        return data
    
    @staticmethod
    def _load_file(name: str, path: Path) -> ModuleType:
        spec = importlib.util.spec_from_file_location(name, path)
        if spec is None or spec.loader is None:
            raise ModuleResolutionFault(str(path), "cannot be loaded")
        module = importlib.util.module_from_spec(spec)
        spec.loader.exec_module(module)
        return module
