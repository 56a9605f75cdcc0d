from decimal import Decimal

import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


LESSON_STATUS_CHOICES = [
    ('passed', 'Passed'),
    ('completed', 'Completed'),
    ('failed', 'Failed'),
    ('incomplete', 'Incomplete'),
    ('browsed', 'Browsed'),
    ('not_attempted', 'Not attempted'),
]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('courses', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='CMIRecord',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('lesson_status', models.CharField(choices=LESSON_STATUS_CHOICES, default='not_attempted', max_length=20)),
                ('lesson_location', models.TextField(blank=True, default='', help_text='Opaque bookmark set by the content')),
                ('score_raw', models.DecimalField(blank=True, decimal_places=2, max_digits=7, null=True)),
                ('score_min', models.DecimalField(decimal_places=2, default=Decimal('0'), max_digits=7)),
                ('score_max', models.DecimalField(decimal_places=2, default=Decimal('100'), max_digits=7)),
                ('total_time', models.PositiveIntegerField(default=0, help_text='Accumulated time in the course, in seconds')),
                ('session_time', models.PositiveIntegerField(default=0, help_text='Last session time delta received, in seconds')),
                ('suspend_data', models.TextField(blank=True, default='')),
                ('exit_mode', models.CharField(blank=True, default='', max_length=16)),
                ('completion_percentage', models.DecimalField(decimal_places=2, default=Decimal('0'), max_digits=5)),
                ('first_accessed', models.DateTimeField(blank=True, null=True)),
                ('last_accessed', models.DateTimeField(blank=True, null=True)),
                ('completed_at', models.DateTimeField(blank=True, null=True)),
                ('access_count', models.PositiveIntegerField(default=0)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('course', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='cmi_records', to='courses.course')),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='cmi_records', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'CMI record',
                'ordering': ['-last_accessed'],
                'indexes': [
                    models.Index(fields=['lesson_status'], name='scorm_cmi_status_idx'),
                    models.Index(fields=['course', 'lesson_status'], name='scorm_cmi_course_status_idx'),
                ],
                'constraints': [
                    models.UniqueConstraint(fields=('user', 'course'), name='unique_cmi_record_per_learner'),
                ],
            },
        ),
        migrations.CreateModel(
            name='SessionRecord',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('session_start', models.DateTimeField(default=django.utils.timezone.now)),
                ('session_end', models.DateTimeField(blank=True, null=True)),
                ('duration', models.PositiveIntegerField(default=0, help_text='Server measured session length in seconds')),
                ('ip_address', models.GenericIPAddressField(blank=True, null=True)),
                ('user_agent', models.TextField(blank=True, default='')),
                ('course', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='scorm_sessions', to='courses.course')),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='scorm_sessions', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ['-session_start'],
                'indexes': [
                    models.Index(fields=['user', 'course', 'session_start'], name='scorm_session_lookup_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='InteractionRecord',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('interaction_id', models.CharField(blank=True, default='', max_length=255)),
                ('interaction_type', models.CharField(blank=True, default='', max_length=50)),
                ('description', models.TextField(blank=True, default='')),
                ('learner_response', models.TextField(blank=True, default='')),
                ('correct_response', models.TextField(blank=True, default='')),
                ('result', models.CharField(blank=True, default='', max_length=50)),
                ('weighting', models.DecimalField(blank=True, decimal_places=2, max_digits=7, null=True)),
                ('latency', models.PositiveIntegerField(blank=True, help_text='Seconds', null=True)),
                ('timestamp', models.DateTimeField(default=django.utils.timezone.now)),
                ('course', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='scorm_interactions', to='courses.course')),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='scorm_interactions', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ['-timestamp'],
                'indexes': [
                    models.Index(fields=['user', 'course', 'timestamp'], name='scorm_interaction_lookup_idx'),
                ],
            },
        ),
    ]
