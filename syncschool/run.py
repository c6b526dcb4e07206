import uvicorn

from syncschool import create_app
from syncschool.core.config import settings

app = create_app()


@app.get("/list-endpoints", include_in_schema=False)
def list_endpoints():
    return {
        "endpoints": [
            {"path": route.path, "name": route.name, "methods": sorted(getattr(route, "methods", None) or [])}
            for route in app.router.routes
        ]
    }


if __name__ == "__main__":
    uvicorn.run("syncschool.run:app", host="0.0.0.0", port=8000, reload=settings.DEBUG)
