from fastapi import Request

from ..services.heartbeat_schema import HeartbeatSchemaCache


def get_schema_cache(request: Request) -> HeartbeatSchemaCache:
    return request.app.state.heartbeat_schema
