"""
URL routing for the SCORM run-time endpoints
"""
from django.urls import path
from . import views

app_name = 'scorm'

urlpatterns = [
    path('course/', views.course_lookup, name='course'),
    path('initialize/', views.initialize, name='initialize'),
    path('get-value/', views.get_value, name='get_value'),
    path('set-value/', views.set_value, name='set_value'),
    path('commit/', views.commit, name='commit'),
    path('finish/', views.finish, name='finish'),
    path('interaction/', views.record_interaction, name='interaction'),
]
