import uuid

import django.core.validators
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ('domains', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='LocalCampaign',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('name', models.CharField(max_length=200)),
                ('business_name', models.CharField(max_length=200)),
                ('gmb_place_id', models.CharField(blank=True, max_length=100, null=True)),
                ('gmb_cid', models.CharField(blank=True, max_length=50, null=True)),
                ('address', models.CharField(blank=True, max_length=500, null=True)),
                ('center_lat', models.DecimalField(decimal_places=7, max_digits=10)),
                ('center_lng', models.DecimalField(decimal_places=7, max_digits=10)),
                ('grid_size', models.IntegerField(default=7, validators=[django.core.validators.MinValueValidator(1), django.core.validators.MaxValueValidator(15)])),
                ('grid_radius_miles', models.DecimalField(decimal_places=2, default=5, max_digits=5, validators=[django.core.validators.MinValueValidator(0), django.core.validators.MaxValueValidator(50)])),
                ('keywords', models.JSONField(blank=True, default=list)),
                ('status', models.CharField(choices=[('ACTIVE', 'Active'), ('PAUSED', 'Paused'), ('ARCHIVED', 'Archived')], db_index=True, default='ACTIVE', max_length=20)),
                ('scan_frequency', models.CharField(choices=[('daily', 'Daily'), ('weekly', 'Weekly'), ('monthly', 'Monthly')], default='weekly', max_length=10)),
                ('last_scan_at', models.DateTimeField(blank=True, null=True)),
                ('next_scan_at', models.DateTimeField(blank=True, db_index=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('domain_ref', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='local_campaigns', to='domains.domain')),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='local_campaigns', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'local_campaigns',
                'ordering': ['-created_at'],
            },
        ),
        migrations.CreateModel(
            name='GridScan',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('status', models.CharField(choices=[('PENDING', 'Pending'), ('SCANNING', 'Scanning'), ('COMPLETED', 'Completed'), ('FAILED', 'Failed')], db_index=True, default='PENDING', max_length=20)),
                ('progress', models.IntegerField(default=0)),
                ('keywords', models.JSONField(blank=True, default=list, help_text='Keywords sampled by this scan')),
                ('grid_size', models.IntegerField(default=7)),
                ('points_completed', models.IntegerField(default=0)),
                ('avg_rank', models.DecimalField(blank=True, decimal_places=2, max_digits=6, null=True)),
                ('share_of_voice', models.DecimalField(blank=True, decimal_places=2, max_digits=5, null=True)),
                ('top_competitor', models.CharField(blank=True, max_length=200, null=True)),
                ('api_calls_used', models.IntegerField(default=0)),
                ('failed_points', models.IntegerField(default=0)),
                ('error_message', models.TextField(blank=True, null=True)),
                ('started_at', models.DateTimeField(blank=True, null=True)),
                ('completed_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('campaign', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='scans', to='local_seo.localcampaign')),
            ],
            options={
                'db_table': 'local_grid_scans',
                'ordering': ['-created_at'],
                'indexes': [models.Index(fields=['campaign', 'created_at'], name='gridscan_campaign_created_idx')],
            },
        ),
        migrations.CreateModel(
            name='GridPointResult',
            fields=[
                ('id', models.BigAutoField(primary_key=True, serialize=False)),
                ('keyword', models.CharField(max_length=200)),
                ('grid_row', models.IntegerField()),
                ('grid_col', models.IntegerField()),
                ('lat', models.DecimalField(decimal_places=7, max_digits=10)),
                ('lng', models.DecimalField(decimal_places=7, max_digits=10)),
                ('target_rank', models.IntegerField(blank=True, help_text='Null when the business was not found', null=True)),
                ('top_competitors', models.JSONField(blank=True, default=list)),
                ('total_results', models.IntegerField(default=0)),
                ('succeeded', models.BooleanField(default=True)),
                ('error_message', models.TextField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('scan', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='points', to='local_seo.gridscan')),
            ],
            options={
                'db_table': 'local_grid_points',
                'ordering': ['keyword', 'grid_row', 'grid_col'],
                'constraints': [models.UniqueConstraint(fields=('scan', 'keyword', 'grid_row', 'grid_col'), name='unique_scan_keyword_point')],
            },
        ),
        migrations.CreateModel(
            name='CompetitorStat',
            fields=[
                ('id', models.BigAutoField(primary_key=True, serialize=False)),
                ('competitor_key', models.CharField(max_length=200)),
                ('business_name', models.CharField(max_length=200)),
                ('is_target', models.BooleanField(default=False)),
                ('gmb_cid', models.CharField(blank=True, max_length=50, null=True)),
                ('rating', models.FloatField(blank=True, null=True)),
                ('review_count', models.IntegerField(blank=True, null=True)),
                ('avg_rank', models.DecimalField(blank=True, decimal_places=2, max_digits=6, null=True)),
                ('appearances', models.IntegerField(default=0)),
                ('times_in_top3', models.IntegerField(default=0)),
                ('times_in_top10', models.IntegerField(default=0)),
                ('times_in_top20', models.IntegerField(default=0)),
                ('share_of_voice', models.DecimalField(decimal_places=2, default=0, max_digits=5)),
                ('prev_avg_rank', models.DecimalField(blank=True, decimal_places=2, max_digits=6, null=True)),
                ('rank_change', models.DecimalField(blank=True, decimal_places=2, max_digits=6, null=True)),
                ('scan', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='competitor_stats', to='local_seo.gridscan')),
            ],
            options={
                'db_table': 'local_competitor_stats',
                'ordering': ['-is_target', '-share_of_voice', 'avg_rank'],
                'constraints': [models.UniqueConstraint(fields=('scan', 'competitor_key'), name='unique_scan_competitor')],
            },
        ),
    ]
