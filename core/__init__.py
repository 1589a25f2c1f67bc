"""Core application of the front-desk queue service.

Models, services, serializers, views and route registrations for the
patient queue, its transfers and its audit trail.
"""
