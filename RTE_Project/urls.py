"""
RTE Project Main URL Configuration

URL Structure:
- /scorm/ : Run-Time Environment endpoints consumed by the content bridge
- /progress/ : learner progress, history and certificate eligibility
- /admin/ : Django admin interface
"""

from django.contrib import admin
from django.urls import path, include

urlpatterns = [
    path('admin/', admin.site.urls),
    path('scorm/', include('scorm.urls')),
    path('progress/', include('scorm.urls_progress')),
]
