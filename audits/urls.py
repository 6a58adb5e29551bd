"""
URL routing for audits app.
"""
from django.urls import path

from . import views

urlpatterns = [
    path('', views.audit_list, name='audit_list'),
    path('<str:audit_id>/', views.audit_detail, name='audit_detail'),
    path('<str:audit_id>/status/', views.audit_status, name='audit_status'),
    path('<str:audit_id>/retry/', views.audit_retry, name='audit_retry'),
    path('<str:audit_id>/report/', views.audit_report, name='audit_report'),
    path('<str:audit_id>/competitors/', views.audit_competitors, name='audit_competitors'),
]
