from .api_module import ApiModule, HandlerFailure, HandlerPartial, HandlerResult, HandlerSuccess
from .configurator import GatewayConfigurator, GatewayUpdate
from .routes import Route, RouteSet

__all__ = [
    "ApiModule",
    "GatewayConfigurator",
    "GatewayUpdate",
    "HandlerFailure",
    "HandlerPartial",
    "HandlerResult",
    "HandlerSuccess",
    "Route",
    "RouteSet",
]
