"""Task Management package.

This package is organized by feature modules (users, tasks, reports, ...)
with a thin Flask controller layer and SOLID service/repository layers.
"""
