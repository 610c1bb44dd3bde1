"""
FastAPI application and routers.
"""
