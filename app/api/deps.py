from typing import Optional

from fastapi import Request

from app.services.app_shell import AppShellClient
from app.services.resolution import SeoResolutionEngine


def get_resolution_engine(request: Request) -> SeoResolutionEngine:
    return request.app.state.seo_engine


def get_app_shell(request: Request) -> Optional[AppShellClient]:
    return getattr(request.app.state, "app_shell", None)
