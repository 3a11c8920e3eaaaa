"""Home page route"""

from fastapi import APIRouter
from fastapi.responses import PlainTextResponse

router = APIRouter()

GREETING = "Hello, World!"


@router.get("/", response_class=PlainTextResponse)
async def index() -> str:
    """Landing page"""
    return GREETING
