"""
URL configuration for mpesa app.
"""

from django.urls import path
from . import views

urlpatterns = [
    path('callback/stk/', views.stk_callback, name='mpesa_stk_callback'),
    path('c2b/validation/', views.c2b_validation, name='mpesa_c2b_validation'),
    path('c2b/confirmation/', views.c2b_confirmation, name='mpesa_c2b_confirmation'),
]
