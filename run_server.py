import uvicorn

from timber_backend.config import ServerConfig
from timber_backend.logging_config import configure_logging

if __name__ == "__main__":
    config = ServerConfig.from_env()
    configure_logging(level=config.log_level)

    print(f"Starting matrix API on port {config.port} ({config.storage.backend_type} storage)...")
    print(f"Docs available at: http://localhost:{config.port}/docs")

    uvicorn.run(
        "timber_backend.api.server:app",
        host=config.host,
        port=config.port,
        log_level=config.log_level.lower(),
    )
