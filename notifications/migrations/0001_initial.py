from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='SlackConfiguration',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('webhook_url', models.URLField(blank=True, help_text='Incoming webhook URL (https://hooks.slack.com/services/...). Leave blank to use SLACK_WEBHOOK_URL.', max_length=500, verbose_name='Webhook URL')),
                ('channel_id', models.CharField(blank=True, help_text='Channel name or ID. Leave blank to use SLACK_CHANNEL_ID.', max_length=100, verbose_name='Channel')),
                ('is_enabled', models.BooleanField(default=True, help_text='Master switch for every Slack notification', verbose_name='Enabled')),
                ('notify_new_request', models.BooleanField(default=True, verbose_name='New delivery requests')),
                ('notify_status_update', models.BooleanField(default=True, verbose_name='Status updates')),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'Slack configuration',
                'verbose_name_plural': 'Slack configuration',
            },
        ),
    ]
