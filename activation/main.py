# activation/main.py
import os

from fastapi import FastAPI

from activation.logger import setup_logging
from activation.routes import activation as activation_router

setup_logging()

app = FastAPI(title="Notification Logger Activation")

app.include_router(activation_router.router)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("activation.main:app", host="127.0.0.1", port=int(os.environ.get("PORT", 8000)))
