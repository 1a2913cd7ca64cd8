import django.utils.timezone
import uuid
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='AuditLog',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('timestamp', models.DateTimeField(default=django.utils.timezone.now)),
                ('actor', models.CharField(max_length=150)),
                ('action', models.CharField(choices=[('Payroll Run Executed', 'Payroll Run Executed'), ('Payroll Run Failed', 'Payroll Run Failed')], max_length=50)),
                ('details', models.TextField(blank=True)),
            ],
            options={
                'ordering': ['-timestamp'],
                'indexes': [
                    models.Index(fields=['action', 'timestamp'], name='auditlog_action_ts_idx'),
                    models.Index(fields=['actor', 'timestamp'], name='auditlog_actor_ts_idx'),
                ],
            },
        ),
    ]
