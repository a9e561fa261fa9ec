"""Core application for the education platform backend.

This package contains models, services, serializers, views and route
registrations implementing the API consumed by the front-end application.
"""
