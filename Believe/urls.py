"""
URL configuration for Believe project.

The `urlpatterns` list routes URLs to views. For more information please see:
    https://docs.djangoproject.com/en/5.1/topics/http/urls/
"""

from django.contrib import admin
from django.urls import path, include

urlpatterns = [
    path("admin/", admin.site.urls),
    # Daily content campaigns (drops & send jobs)
    path("campaigns/", include("campaigns.urls")),
    # Node boss shares & referrals
    path("nodeboss/", include("nodeboss.urls")),
]
