"""
URL routing for local_seo app.
"""
from django.urls import path

from . import views

urlpatterns = [
    path('campaigns/', views.campaign_list, name='local_seo_campaign_list'),
    path('campaigns/<str:campaign_id>/', views.campaign_detail, name='local_seo_campaign_detail'),
    path('campaigns/<str:campaign_id>/scan/', views.campaign_scan, name='local_seo_campaign_scan'),
    path('campaigns/<str:campaign_id>/scans/', views.campaign_scans, name='local_seo_campaign_scans'),
    path('campaigns/<str:campaign_id>/scans/<str:scan_id>/', views.scan_detail, name='local_seo_scan_detail'),
    path('campaigns/<str:campaign_id>/scans/<str:scan_id>/grid/', views.scan_grid, name='local_seo_scan_grid'),
    path('campaigns/<str:campaign_id>/competitors/', views.campaign_competitors,
         name='local_seo_campaign_competitors'),
]
