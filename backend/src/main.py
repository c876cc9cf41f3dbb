"""FastAPI application entry point for IRP.

Run with: uvicorn main:app --reload
"""

from irp.app import create_app

app = create_app()
