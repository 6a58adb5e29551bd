"""
URL routing for site_audit app.
"""
from django.urls import path

from . import views

urlpatterns = [
    path('scans/', views.scan_list, name='site_audit_scan_list'),
    path('scans/<str:scan_id>/', views.scan_detail, name='site_audit_scan_detail'),
    path('scans/<str:scan_id>/status/', views.scan_status, name='site_audit_scan_status'),
    path('scans/<str:scan_id>/pages/', views.scan_pages, name='site_audit_scan_pages'),
    path('scans/<str:scan_id>/pages/<str:page_id>/', views.page_detail, name='site_audit_page_detail'),
    path('scans/<str:scan_id>/duplicates/', views.scan_duplicates, name='site_audit_scan_duplicates'),
    path('scans/<str:scan_id>/issues/', views.scan_issues, name='site_audit_scan_issues'),
    path('scans/<str:scan_id>/non-indexable/', views.scan_non_indexable, name='site_audit_scan_non_indexable'),
    path('scans/<str:scan_id>/redirects/', views.scan_redirects, name='site_audit_scan_redirects'),
]
