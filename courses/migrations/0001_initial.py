from decimal import Decimal

import django.core.validators
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='Course',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('title', models.CharField(max_length=255)),
                ('description', models.TextField(blank=True, default='')),
                ('scorm_version', models.CharField(choices=[('1.2', 'SCORM 1.2')], default='1.2', max_length=16)),
                ('entry_point', models.CharField(help_text='Launch file of the package, relative to its root (e.g. index_lms.html)', max_length=255)),
                ('passing_score', models.DecimalField(decimal_places=2, default=Decimal('80.00'), help_text='Raw score a learner must meet or exceed to be eligible for a certificate', max_digits=5, validators=[django.core.validators.MinValueValidator(0), django.core.validators.MaxValueValidator(100)])),
                ('total_modules', models.PositiveIntegerField(default=1)),
                ('is_active', models.BooleanField(default=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'ordering': ['-created_at'],
                'indexes': [models.Index(fields=['is_active', 'created_at'], name='courses_active_created_idx')],
            },
        ),
    ]
