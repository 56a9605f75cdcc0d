from django.contrib import admin

from .models import Course


@admin.register(Course)
class CourseAdmin(admin.ModelAdmin):
    list_display = ['title', 'scorm_version', 'entry_point', 'passing_score', 'is_active', 'created_at']
    list_filter = ['is_active', 'scorm_version']
    search_fields = ['title', 'description']
    readonly_fields = ['created_at', 'updated_at']
