import uuid

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ('domains', '0001_initial'),
        ('audits', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='SiteAuditScan',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('domain', models.CharField(max_length=255)),
                ('status', models.CharField(choices=[('PENDING', 'Pending'), ('SUBMITTING', 'Submitting'), ('CRAWLING', 'Crawling'), ('FETCHING_RESULTS', 'Fetching results'), ('COMPLETED', 'Completed'), ('FAILED', 'Failed')], db_index=True, default='PENDING', max_length=20)),
                ('progress', models.IntegerField(default=0)),
                ('task_id', models.CharField(blank=True, help_text='Remote crawl task id', max_length=100, null=True)),
                ('max_crawl_pages', models.IntegerField(default=100)),
                ('enable_javascript', models.BooleanField(default=True)),
                ('enable_browser_rendering', models.BooleanField(default=True)),
                ('store_raw_html', models.BooleanField(default=False)),
                ('calculate_keyword_density', models.BooleanField(default=False)),
                ('start_url', models.URLField(blank=True, max_length=2000, null=True)),
                ('api_cost', models.DecimalField(blank=True, decimal_places=4, max_digits=10, null=True)),
                ('error_message', models.TextField(blank=True, null=True)),
                ('started_at', models.DateTimeField(blank=True, null=True)),
                ('completed_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('audit', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='site_audit_scans', to='audits.audit')),
                ('domain_ref', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='site_audit_scans', to='domains.domain')),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='site_audit_scans', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'site_audit_scans',
                'ordering': ['-created_at'],
                'indexes': [models.Index(fields=['user', 'created_at'], name='scan_user_created_idx')],
            },
        ),
        migrations.CreateModel(
            name='SiteAuditSummary',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('total_pages', models.IntegerField(default=0)),
                ('crawled_pages', models.IntegerField(default=0)),
                ('crawl_stop_reason', models.CharField(blank=True, max_length=100, null=True)),
                ('errors_count', models.IntegerField(default=0)),
                ('warnings_count', models.IntegerField(default=0)),
                ('notices_count', models.IntegerField(default=0)),
                ('onpage_score', models.FloatField(blank=True, null=True)),
                ('avg_lcp', models.FloatField(blank=True, null=True)),
                ('avg_cls', models.FloatField(blank=True, null=True)),
                ('total_images', models.IntegerField(default=0)),
                ('broken_resources', models.IntegerField(default=0)),
                ('internal_links', models.IntegerField(default=0)),
                ('external_links', models.IntegerField(default=0)),
                ('broken_links', models.IntegerField(default=0)),
                ('non_indexable', models.IntegerField(default=0)),
                ('redirects', models.IntegerField(default=0)),
                ('duplicate_title', models.IntegerField(default=0)),
                ('duplicate_description', models.IntegerField(default=0)),
                ('duplicate_content', models.IntegerField(default=0)),
                ('domain_info', models.JSONField(blank=True, null=True)),
                ('ssl_info', models.JSONField(blank=True, null=True)),
                ('page_metrics_checks', models.JSONField(blank=True, null=True)),
                ('thematic_scores', models.JSONField(blank=True, default=list)),
                ('health_score', models.IntegerField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('scan', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name='summary', to='site_audit.siteauditscan')),
            ],
            options={
                'db_table': 'site_audit_summaries',
            },
        ),
        migrations.CreateModel(
            name='SiteAuditPage',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('url', models.TextField()),
                ('url_hash', models.CharField(max_length=64)),
                ('status_code', models.IntegerField(default=0)),
                ('onpage_score', models.FloatField(blank=True, null=True)),
                ('title', models.CharField(blank=True, max_length=1000, null=True)),
                ('description', models.TextField(blank=True, null=True)),
                ('h1_tags', models.JSONField(blank=True, default=list)),
                ('word_count', models.IntegerField(blank=True, null=True)),
                ('redirect_location', models.CharField(blank=True, max_length=2000, null=True)),
                ('is_redirect', models.BooleanField(default=False)),
                ('page_timing', models.JSONField(blank=True, null=True)),
                ('checks', models.JSONField(blank=True, null=True)),
                ('meta', models.JSONField(blank=True, null=True)),
                ('issue_types', models.JSONField(blank=True, default=list)),
                ('issue_count', models.IntegerField(default=0)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('scan', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='pages', to='site_audit.siteauditscan')),
            ],
            options={
                'db_table': 'site_audit_pages',
                'ordering': ['url'],
                'indexes': [models.Index(fields=['scan', 'status_code'], name='scan_page_status_idx'), models.Index(fields=['scan', 'issue_count'], name='scan_page_issues_idx')],
                'constraints': [models.UniqueConstraint(fields=('scan', 'url_hash'), name='unique_scan_url_hash')],
            },
        ),
    ]
