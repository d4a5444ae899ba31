# cartsync/store_service/main.py
import uvicorn
from fastapi import APIRouter, FastAPI

from cartsync.store_service.routers import cart, coupons, products, settings, wishlist
from cartsync.utils.logging import get_logger

logger = get_logger(__name__)


def create_app() -> FastAPI:
    app = FastAPI(
        title="Store Service (dev mock)",
        version="1.0.0",
    )

    api = APIRouter(prefix="/api")
    api.include_router(products.router)
    api.include_router(cart.router)
    api.include_router(coupons.router)
    api.include_router(settings.router)
    api.include_router(wishlist.router)
    app.include_router(api)

    @app.get("/health")
    def health():
        return {"status": "ok"}

    return app


app = create_app()

if __name__ == "__main__":
    logger.info("Starting dev store service on :5000")
    uvicorn.run(app, host="0.0.0.0", port=5000)
