"""
FastAPI REST API for the users collection.

Serves ``/api/v1/users`` with URL-driven filtering, sorting, field
selection and pagination.

Run with:
    uvicorn api:app --host 0.0.0.0 --port 8000
"""

from dotenv import load_dotenv

from query_api import create_app
from query_api.config import get_settings

load_dotenv()

settings = get_settings()
app = create_app(settings)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=settings.api_host, port=settings.api_port)
