# agrimarket/api/__init__.py
from fastapi import FastAPI

from agrimarket.api.errors import register_error_handlers
from agrimarket.api.routers import auth, carts, health, orders, payments, users


def create_app(lifespan=None) -> FastAPI:
    app = FastAPI(
        title="Agrimarket Order Service",
        version="1.0.0",
        lifespan=lifespan,
    )

    register_error_handlers(app)

    app.include_router(health.router)
    app.include_router(users.router)
    app.include_router(auth.router)
    app.include_router(carts.router)
    app.include_router(orders.router)
    app.include_router(payments.router)

    return app
