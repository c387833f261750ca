"""Application package for the multi-role e-learning backend.

This package exposes the models, repositories, services and routers used
by the FastAPI application in `elearning.main`. Individual modules
contain the concrete implementations and documentation.
"""
