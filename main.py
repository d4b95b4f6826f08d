"""
FilePath: "/main.py"
Project: Colloquium Bot Framework - Entry Point
Description: Starts the bot runtime behind the FastAPI server.
Author: "Colloquium Contributors"
Date created: "19/10/2026"
Version: "1.0.0"
"""

# --- 0. Imports ---
import logging
import os

import uvicorn
from dotenv import load_dotenv
from termcolor import colored

# --- 0. Environment Setup ---
current_dir = os.path.dirname(os.path.abspath(__file__))
load_dotenv(os.path.join(current_dir, ".env"), override=True)

# --- 0. Local Imports ---
from colloquium.server import create_app  # noqa: E402
from colloquium.settings import get_settings  # noqa: E402

# --- 1. Logging Setup ---
settings = get_settings()
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler()],
)
logger = logging.getLogger("Colloquium")

app = create_app(settings)


if __name__ == "__main__":
    logger.info(colored(f"--- {settings.APP_NAME} starting on {settings.HOST}:{settings.PORT} ---", "green", attrs=["bold"]))
    if settings.ADMIN_API_KEY == "change-me-admin-key":
        logger.warning(colored("ADMIN_API_KEY is the default value. Set it in .env before deploying.", "yellow"))
    logger.info(colored(f"Plugins: {', '.join(settings.BOT_PLUGINS) or 'none'}", "cyan"))

    try:
        uvicorn.run(app, host=settings.HOST, port=settings.PORT, log_level=settings.LOG_LEVEL.lower())
    except KeyboardInterrupt:
        print("\nGoodbye!")
