from .interfaces import (
    FunctionStore,
    GatewayStore,
    IdentityProvider,
    ObjectStore,
    RemoteClients,
)

__all__ = [
    "FunctionStore",
    "GatewayStore",
    "IdentityProvider",
    "ObjectStore",
    "RemoteClients",
]
