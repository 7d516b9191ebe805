"""
FastAPI dependencies — settings and the process‑wide client registry.
"""
from fastapi import Request

from expense_lane.config import Settings
from expense_lane.services.registry import ClientRegistry


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_registry(request: Request) -> ClientRegistry:
    return request.app.state.registry
