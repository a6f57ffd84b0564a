# app/core/dependencies.py
from fastapi import Depends, Request
from app.core.config import Settings, settings as default_settings
from app.services.checkout import ensure_checkout_configured
from app.services.gateway import SSLCommerzClient
from app.services.order_store import OrderStore

# Collaborators are built once by the startup hook in app.main and live on app.state

def get_settings(request: Request) -> Settings:
    return getattr(request.app.state, "settings", default_settings)

def get_gateway(request: Request) -> SSLCommerzClient:
    return request.app.state.gateway

def get_order_store(request: Request) -> OrderStore:
    return request.app.state.order_store

def get_checkout_gateway(
    gateway: SSLCommerzClient = Depends(get_gateway),
    settings: Settings = Depends(get_settings),
) -> SSLCommerzClient:
    """Gateway for checkout; configuration errors surface before the request body is validated"""
    ensure_checkout_configured(gateway, settings)
    return gateway
