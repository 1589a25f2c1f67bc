"""
URL mappings for the front-desk queue API.

Trailing slashes are omitted (``APPEND_SLASH`` is off).  Fixed paths
under ``api/queue/`` are listed before ``<int:pk>`` so they are never
read as entry ids.
"""
from django.urls import path

from .views import directory, health, queues

urlpatterns = [
    path('healthz', health.healthz, name='healthz'),

    # Queue
    path('api/queue', queues.queue_collection, name='queue_collection'),
    path('api/queue/display', queues.queue_display, name='queue_display'),
    path('api/queue/statistics', queues.queue_statistics, name='queue_statistics'),
    path('api/queue/<int:pk>', queues.queue_entry, name='queue_entry'),
    path('api/queue/<int:pk>/transfer', queues.queue_entry_transfer, name='queue_entry_transfer'),
    path('api/queue/<int:pk>/transfers', queues.queue_entry_transfers, name='queue_entry_transfers'),

    # Lookups for the queue and transfer forms
    path('api/queue/departments', directory.departments, name='queue_departments'),
    path('api/queue/doctors', directory.doctors, name='queue_doctors'),
]
