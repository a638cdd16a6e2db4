"""
ASGI entrypoint: exposes `app` for uvicorn or another process manager.

Settings are read from the environment when this module is imported, so a
missing variable stops the process before it accepts requests.
"""

from .main import create_app

app = create_app()

if __name__ == "__main__":
    import os

    import uvicorn

    uvicorn.run("checkout_service.asgi:app", host="0.0.0.0", port=int(os.getenv("PORT", "8000")))
