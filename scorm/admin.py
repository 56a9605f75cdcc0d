from django.contrib import admin

from .models import CMIRecord, SessionRecord, InteractionRecord
from .utils import format_scorm_time


@admin.register(CMIRecord)
class CMIRecordAdmin(admin.ModelAdmin):
    list_display = [
        'user', 'course', 'lesson_status', 'score_raw', 'completion_percentage',
        'total_time_display', 'access_count', 'last_accessed',
    ]
    list_filter = ['lesson_status', 'course']
    search_fields = ['user__username', 'user__email', 'course__title']
    raw_id_fields = ['user']
    # Progress is written by the run-time only
    readonly_fields = [
        'total_time', 'session_time', 'completion_percentage', 'first_accessed',
        'last_accessed', 'completed_at', 'access_count', 'created_at', 'updated_at',
    ]

    fieldsets = (
        ('Learner', {
            'fields': ('user', 'course')
        }),
        ('Status', {
            'fields': ('lesson_status', 'lesson_location', 'exit_mode', 'completion_percentage', 'completed_at')
        }),
        ('Score', {
            'fields': ('score_raw', 'score_min', 'score_max')
        }),
        ('Time', {
            'fields': ('total_time', 'session_time', 'first_accessed', 'last_accessed', 'access_count')
        }),
        ('Content State', {
            'fields': ('suspend_data',),
            'classes': ('collapse',)
        }),
        ('Timestamps', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )

    @admin.display(description='Total time')
    def total_time_display(self, obj):
        return format_scorm_time(obj.total_time)


@admin.register(SessionRecord)
class SessionRecordAdmin(admin.ModelAdmin):
    list_display = ['id', 'user', 'course', 'session_start', 'session_end', 'duration', 'ip_address']
    list_filter = ['course', 'session_start']
    search_fields = ['user__username', 'ip_address']
    raw_id_fields = ['user']
    readonly_fields = ['session_start', 'session_end', 'duration', 'ip_address', 'user_agent']


@admin.register(InteractionRecord)
class InteractionRecordAdmin(admin.ModelAdmin):
    list_display = ['interaction_id', 'user', 'course', 'interaction_type', 'result', 'timestamp']
    list_filter = ['interaction_type', 'result', 'course']
    search_fields = ['interaction_id', 'user__username']
    raw_id_fields = ['user']

    def has_change_permission(self, request, obj=None):
        return False
