"""Core application for the ClinicDesk backend.

This package contains the models, services, serializers, views and
route registrations behind the desktop client's patient, pharmacy,
prescription and finance screens.
"""
