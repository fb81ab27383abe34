"""Main entry point for photo-catalog web server."""

import logging
import sys

import uvicorn

from photo_catalog.library.config import get_default_config
from .api import create_app


HOST = "127.0.0.1"
PORT = 8000


def main():
    """Run the web server."""
    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    config = get_default_config()
    print("Starting photo-catalog web server...")
    print(f"Listening on: http://{HOST}:{PORT}")
    print(f"API documentation: http://{HOST}:{PORT}/docs")
    print(f"Catalog database: {config.db_path}")
    print(f"Thumbnail cache: {config.cache_dir}")
    print("\nPress Ctrl+C to stop the server")

    uvicorn.run(
        create_app(config),
        host=HOST,
        port=PORT,
        log_level="info",
        reload=False  # Set to True for development
    )


if __name__ == "__main__":
    try:
        main()
    except KeyboardInterrupt:
        print("\nServer stopped by user")
        sys.exit(0)
    except Exception as e:
        print(f"Error starting server: {e}")
        sys.exit(1)
