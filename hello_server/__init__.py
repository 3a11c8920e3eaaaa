"""Hello Server: a FastAPI request pipeline bootstrap."""

__version__ = "1.0.0"
