"""Entry point for running the solo combat API.

Run with: chiwar-solo-server
Or from the repository root: python -m app.server (with backend/ on the path)
"""

import os

import uvicorn

from app.main import app


def main() -> None:
    host = os.environ.get("HOST", "0.0.0.0")
    port = int(os.environ.get("PORT", "8000"))
    uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    main()
