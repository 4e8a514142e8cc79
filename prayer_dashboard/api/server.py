"""
FastAPI server for the dashboard API. Run with run_api_server(app) in a background thread.
Central endpoint: GET /api/components. Per-plugin routes are mounted from
prayer_dashboard.plugins.<package>.api (get_router(dashboard_app)) under /api/components/<package>/.
Docs when enabled: http://<host>:<port>/docs
"""
import importlib
import logging
import pkgutil
import threading
from typing import Any, Dict, List

from fastapi import FastAPI

logger = logging.getLogger(__name__)

# Keys to exclude from component config in API (secrets)
_CONFIG_SECRET_KEYS = frozenset(
    {"api_key", "password", "token", "secret", "credentials", "client_secret"}
)


def _safe_component_config(config: Dict[str, Any]) -> Dict[str, Any]:
    """Return config with secret keys omitted."""
    if not config:
        return {}
    return {k: v for k, v in config.items() if k.lower() not in _CONFIG_SECRET_KEYS}


def create_app(dashboard_app: Any) -> FastAPI:
    """Create FastAPI app with routes that use the given dashboard app instance."""
    app = FastAPI(title="Prayer Dashboard API", description="Components and prayer times state")

    @app.get("/api/components")
    def list_components() -> List[Dict[str, Any]]:
        """List registered components with enabled state and safe config."""
        components_data = []
        comp_config = dashboard_app.config.data.get("components") or {}
        for name in dashboard_app.plugin_manager.components:
            config = comp_config.get(name) or {}
            enabled = config.get("enable", True) if isinstance(config, dict) else True
            components_data.append({
                "name": name,
                "enabled": enabled,
                "config": _safe_component_config(config) if isinstance(config, dict) else {},
            })
        return components_data

    plugins_pkg = importlib.import_module("prayer_dashboard.plugins")
    for _mod, name, is_pkg in pkgutil.iter_modules(plugins_pkg.__path__):
        if not is_pkg:
            continue
        try:
            api_module = importlib.import_module(f"prayer_dashboard.plugins.{name}.api")
        except ImportError:
            continue
        if not callable(getattr(api_module, "get_router", None)):
            continue
        try:
            router = api_module.get_router(dashboard_app)
            if router is not None:
                app.include_router(router, prefix=f"/api/components/{name}")
        except Exception as e:
            logger.warning(f"Failed to mount API router for plugin {name}: {e}", exc_info=True)

    return app


def run_api_server(dashboard_app: Any) -> None:
    """
    Start the API server in a daemon thread if api.enabled is true.
    Reads api.host (default 127.0.0.1) and api.port (default 8765) from config.
    """
    api_config = dashboard_app.config.data.get("api") or {}
    if not api_config.get("enabled", False):
        logger.info("API server not started: set api.enabled to true in your config file to enable.")
        return
    host = api_config.get("host", "127.0.0.1")
    port = int(api_config.get("port", 8765))
    fastapi_app = create_app(dashboard_app)

    def run_uvicorn():
        try:
            import uvicorn
            logger.info(f"API server listening at http://{host}:{port} (docs at /docs)")
            uvicorn.run(fastapi_app, host=host, port=port, log_config=None)
        except Exception as e:
            logger.exception(f"API server thread failed: {e}")

    thread = threading.Thread(target=run_uvicorn, daemon=True)
    thread.start()
    logger.info("API server thread started.")
