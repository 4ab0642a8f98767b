from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from exif_harvest.routers.images import images_router, pipeline_router
from exif_harvest.services.config import configure_logging, get_settings


def create_app() -> FastAPI:
	configure_logging(get_settings().log_level)
	app = FastAPI(title="EXIF Harvest API", version="0.1.0")

	# CORS (adjust origins in production)
	app.add_middleware(
		CORSMiddleware,
		allow_origins=["*"],
		allow_credentials=False,
		allow_methods=["*"],
		allow_headers=["*"],
	)

	# Routers
	app.include_router(pipeline_router)
	app.include_router(images_router)

	return app


app = create_app()


if __name__ == "__main__":
	# Local dev server: uvicorn exif_harvest.main:app --reload
	import uvicorn

	uvicorn.run("exif_harvest.main:app", host="0.0.0.0", port=8000, reload=True)
