"""Leave Management package.

This package is organized by feature modules (users, leaves, reports, ...)
with a thin Flask controller layer and service/repository layers underneath.
"""
