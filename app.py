"""Development entrypoint delegating to the application package."""

import logging

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

from trackify.config import Settings
from trackify.main import create_app

settings = Settings.from_env()
logging.basicConfig(level=settings.log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

app = create_app(settings)


if __name__ == "__main__":
    app.run(host="0.0.0.0", port=8000, debug=True)
