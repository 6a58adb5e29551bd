"""
URL routing for domains app.
"""
from django.urls import path, include
from rest_framework.routers import DefaultRouter

from .views import DomainViewSet

router = DefaultRouter()
router.register(r'', DomainViewSet, basename='domain')

urlpatterns = [
    path('', include(router.urls)),
]
