"""
URL routing for learner progress reads
"""
from django.urls import path
from . import views_progress

app_name = 'progress'

urlpatterns = [
    path('', views_progress.progress_list, name='list'),
    path('<int:course_id>/', views_progress.course_progress, name='course'),
    path('history/<int:course_id>/', views_progress.session_history, name='history'),
    path('interactions/<int:course_id>/', views_progress.interaction_log, name='interactions'),
    path(
        'certificate-eligibility/<int:course_id>/',
        views_progress.certificate_eligibility,
        name='certificate_eligibility',
    ),
]
