from .api import materialize_api_gateway, materialize_resource_path
from .config import ApiGatewayConfig, ApiGatewayConfigDict, ResourcePathConfig
from .routing import emit_api_routes, resource_path_id

__all__ = [
    "ApiGatewayConfig",
    "ApiGatewayConfigDict",
    "ResourcePathConfig",
    "emit_api_routes",
    "materialize_api_gateway",
    "materialize_resource_path",
    "resource_path_id",
]
