"""
Trainer app URL configuration - course reference data
"""
from django.urls import path

from .views import course_detail

urlpatterns = [
    path('courses/<str:course_id>/', course_detail, name='course-detail'),
]
