"""Route tables declared by API modules."""

from dataclasses import dataclass, field
from typing import Any, Dict, List

from ..core.exceptions import ConfigurationError

PROXY_PATH = "/{proxy+}"
ANY_METHOD = "ANY"


def normalize_path(path: str) -> str:
    """``echo/`` -> ``/echo``; the empty path is the root ``/``."""
    stripped = path.strip().strip("/")
    return f"/{stripped}" if stripped else "/"


@dataclass
class Route:
    path: str
    method: str
    options: Dict[str, Any] = field(default_factory=dict)


@dataclass
class RouteSet:
    """Ordered (method, path) entries the gateway must expose."""

    routes: List[Route] = field(default_factory=list)
    proxy: bool = False
    cors: bool = True

    @classmethod
    def from_api_config(cls, config: Dict[str, Any]) -> "RouteSet":
        """
        Build from ``{"version": 3, "routes": {path: {METHOD: {...}}}}``.

        Raises:
            ConfigurationError: If the table is not shaped as above
        """
        routes_table = config.get("routes")
        if not isinstance(routes_table, dict):
            raise ConfigurationError("api_config() must return a dict with a 'routes' mapping")

        routes = []
        for path in sorted(routes_table, key=normalize_path):
            methods = routes_table[path]
            if not isinstance(methods, dict):
                raise ConfigurationError(f"Invalid route definition for {path}")
            for method in sorted(methods):
                options = methods[method] or {}
                routes.append(Route(normalize_path(path), method.upper(), dict(options)))

        return cls(routes=routes, cors=config.get("corsHandlers", True) is not False)

    @classmethod
    def catch_all(cls) -> "RouteSet":
        return cls(
            routes=[Route("/", ANY_METHOD), Route(PROXY_PATH, ANY_METHOD)],
            proxy=True,
            cors=False,
        )

    def resource_paths(self) -> List[str]:
        """Every non-root path needed, parents before children."""
        paths = set()
        for route in self.routes:
            segments = [s for s in route.path.split("/") if s]
            for i in range(1, len(segments) + 1):
                paths.add("/" + "/".join(segments[:i]))
        return sorted(paths, key=lambda p: (p.count("/"), p))

    def methods_for(self, path: str) -> List[str]:
        return [route.method for route in self.routes if route.path == path]

    def paths_with_methods(self) -> List[str]:
        seen: List[str] = []
        for route in self.routes:
            if route.path not in seen:
                seen.append(route.path)
        return seen

    def to_canonical(self) -> Dict[str, Any]:
        """Logical content used for the configuration digest."""
        table: Dict[str, Dict[str, Any]] = {}
        for route in self.routes:
            table.setdefault(route.path, {})[route.method] = route.options
        return {"routes": table, "proxy": self.proxy, "cors": self.cors}
