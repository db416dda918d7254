"""Request-scoped accessors for services built in the app lifespan."""

from fastapi import Request

from priceinsure.config import Settings
from priceinsure.web.services import OrderService, QueryService, TransactionBuilder


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_transaction_builder(request: Request) -> TransactionBuilder:
    return request.app.state.transaction_builder


def get_order_service(request: Request) -> OrderService:
    return request.app.state.order_service


def get_query_service(request: Request) -> QueryService:
    return request.app.state.query_service
