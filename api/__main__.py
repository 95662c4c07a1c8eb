import os

import uvicorn

from curator.logging_utils import configure_logging


def main() -> None:
    """Run the webhook receiver."""
    configure_logging(level=os.getenv("LOG_LEVEL", "INFO"))
    uvicorn.run(
        "api.main:app",
        host=os.getenv("CURATOR_HOST", "127.0.0.1"),
        port=int(os.getenv("CURATOR_PORT", "8000")),
        reload=bool(os.getenv("CURATOR_RELOAD")),
    )


if __name__ == "__main__":
    main()
