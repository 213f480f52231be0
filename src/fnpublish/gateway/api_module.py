"""Loading the project's API module and probing its optional capabilities.

An API module may define any of:

- ``api_config()`` returning the route table,
- ``router(event, context)`` handling gateway requests,
- ``post_deploy(options, event)`` run after a successful deployment.

Each capability is detected independently when the module is loaded.
"""

import contextlib
import importlib.util
import inspect
import logging
import os
import sys
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from types import ModuleType
from typing import Any, Callable, Dict, Iterator, Mapping, Optional, Union

from ..config import API_ROUTER_NAME
from ..core.exceptions import ConfigurationError

log = logging.getLogger(__name__)


@dataclass
class HandlerSuccess:
    value: Any


@dataclass
class HandlerFailure:
    error: BaseException


@dataclass
class HandlerPartial:
    """Streamed response; chunks are produced lazily by the handler."""

    chunks: Iterator[Any]
    collected: list = field(default_factory=list)

    def drain(self) -> list:
        self.collected.extend(self.chunks)
        return self.collected


HandlerResult = Union[HandlerSuccess, HandlerFailure, HandlerPartial]


def _module_path(package_dir: Path, module_name: str) -> Path:
    relative = Path(*module_name.split("."))
    candidates = [
        package_dir / relative.with_suffix(".py"),
        package_dir / relative / "__init__.py",
    ]
    for candidate in candidates:
        if candidate.is_file():
            return candidate
    raise ConfigurationError(f"Cannot find API module {module_name} in {package_dir}")


@contextlib.contextmanager
def _package_imports(package_dir: Path):
    """Make package_dir importable; drop modules it contributed afterwards."""
    roots = (str(package_dir), str(package_dir.resolve()))
    before = set(sys.modules)
    sys.path.insert(0, str(package_dir))
    try:
        yield
    finally:
        with contextlib.suppress(ValueError):
            sys.path.remove(str(package_dir))
        for name in set(sys.modules) - before:
            module_file = getattr(sys.modules.get(name), "__file__", None) or ""
            if module_file.startswith(roots) or name.startswith("_fnpublish_api_"):
                sys.modules.pop(name, None)


@contextlib.contextmanager
def _scoped_environ(variables: Optional[Mapping[str, str]]):
    """Expose variables through os.environ; previous values come back afterwards."""
    if not variables:
        yield
        return

    saved = {key: os.environ.get(key) for key in variables}
    os.environ.update({str(k): str(v) for k, v in variables.items()})
    try:
        yield
    finally:
        for key, value in saved.items():
            if value is None:
                os.environ.pop(key, None)
            else:
                os.environ[key] = value


class ApiModule:
    """A loaded API module with independently optional capabilities.

    ``environment`` holds the variables the function will run with. They are
    visible through ``os.environ`` while the module is imported and while any
    of its capabilities runs, and nowhere else.
    """

    def __init__(
        self,
        module: ModuleType,
        name: str,
        package_dir: Path,
        environment: Optional[Mapping[str, str]] = None,
    ):
        self.module = module
        self.name = name
        self.package_dir = package_dir
        self.environment = dict(environment or {})
        self._api_config = self._capability("api_config")
        self._router = self._capability(API_ROUTER_NAME)
        self._post_deploy = self._capability("post_deploy")

    @classmethod
    def load(
        cls,
        package_dir: Path,
        module_name: str,
        environment: Optional[Mapping[str, str]] = None,
    ) -> "ApiModule":
        """
        Import the module from the package directory under a private name.

        Every load executes the module afresh, so repeated deployments and
        modules that cannot be imported twice do not interfere.

        Raises:
            ConfigurationError: If the module cannot be found or executed
        """
        path = _module_path(package_dir, module_name)
        private_name = f"_fnpublish_api_{uuid.uuid4().hex}"
        spec = importlib.util.spec_from_file_location(private_name, path)
        if not spec or not spec.loader:
            raise ConfigurationError(f"Cannot load API module {module_name}")

        module = importlib.util.module_from_spec(spec)
        # relative imports resolve against the real parent package
        module.__package__ = module_name.rpartition(".")[0]
        with _package_imports(package_dir), _scoped_environ(environment):
            sys.modules[private_name] = module
            try:
                spec.loader.exec_module(module)
            except Exception as e:
                raise ConfigurationError(
                    f"Cannot load API module {module_name}: {e}"
                ) from e

        log.debug(f"Loaded API module {module_name} from {path}")
        return cls(module, module_name, package_dir, environment)

    @contextlib.contextmanager
    def _running(self):
        with _package_imports(self.package_dir), _scoped_environ(self.environment):
            yield

    def _capability(self, attr: str) -> Optional[Callable[..., Any]]:
        value = getattr(self.module, attr, None)
        return value if callable(value) else None

    @property
    def has_api_config(self) -> bool:
        return self._api_config is not None

    @property
    def has_router(self) -> bool:
        return self._router is not None

    @property
    def has_post_deploy(self) -> bool:
        return self._post_deploy is not None

    def api_config(self) -> Dict[str, Any]:
        """Route table declared by the module.

        Raises:
            ConfigurationError: If the module has no api_config or it returns a non-dict
        """
        if self._api_config is None:
            raise ConfigurationError(f"{self.name} does not define api_config()")
        with self._running():
            config = self._api_config()
        if not isinstance(config, dict):
            raise ConfigurationError(f"{self.name}.api_config() must return a dict")
        return config

    def invoke(self, event: Dict[str, Any], context: Any = None) -> HandlerResult:
        """Run the request handler and capture its outcome as a tagged result."""
        if self._router is None:
            return HandlerFailure(
                ConfigurationError(f"{self.name} does not define {API_ROUTER_NAME}()")
            )
        try:
            with self._running():
                value = self._router(event, context)
        except Exception as e:
            return HandlerFailure(e)

        if isinstance(value, Iterator):
            return HandlerPartial(chunks=value)
        return HandlerSuccess(value)

    async def post_deploy(self, options: Dict[str, Any], event: Dict[str, Any]) -> Any:
        """Run the hook, awaiting its result when it returns an awaitable."""
        if self._post_deploy is None:
            return None
        with self._running():
            result = self._post_deploy(options, event)
            if inspect.isawaitable(result):
                result = await result
        return result
