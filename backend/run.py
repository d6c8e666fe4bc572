"""Run the API server with proper environment loading"""
import sys
from pathlib import Path

# Make the backend package importable when run from a checkout
BACKEND_DIR = Path(__file__).resolve().parent
sys.path.insert(0, str(BACKEND_DIR))

from dotenv import load_dotenv

load_dotenv(BACKEND_DIR.parent / ".env", override=True)

if __name__ == "__main__":
    import uvicorn

    from listing_extraction.core.config import get_settings
    from listing_extraction.main import app

    settings = get_settings()

    uvicorn.run(
        app,
        host=settings.api_host,
        port=settings.api_port,
        reload=False,
    )
