"""
Notifications App - Tests for the Slack configuration, service and proxy.

Tests cover:
- SlackConfiguration singleton behavior and settings fallback
- Message builders (new request, status update, exception)
- Best-effort notify helpers (mocked webhook)
- /api/slack/send and /slack/send proxy
"""

import json
from unittest.mock import patch, MagicMock

import requests
from django.core.cache import cache
from django.test import TestCase, override_settings
from rest_framework.test import APIClient

from logistics.services import lifecycle
from .models import SlackConfiguration
from . import services

WEBHOOK = 'https://hooks.slack.com/services/T000/B000/XXXX'


class SlackConfigurationModelTest(TestCase):
    """Test the SlackConfiguration singleton model."""

    def setUp(self):
        cache.delete('slack_configuration')

    def test_get_config_creates_instance(self):
        config = SlackConfiguration.get_config()
        self.assertEqual(config.pk, 1)
        self.assertEqual(SlackConfiguration.objects.count(), 1)

    def test_singleton_enforcement(self):
        SlackConfiguration.get_config()
        other = SlackConfiguration(channel_id='#dispatch')
        other.save()
        self.assertEqual(SlackConfiguration.objects.count(), 1)
        self.assertEqual(SlackConfiguration.get_config().channel_id, '#dispatch')

    @override_settings(SLACK_WEBHOOK_URL='')
    def test_not_configured_without_url(self):
        self.assertFalse(SlackConfiguration.get_config().is_configured)

    @override_settings(SLACK_WEBHOOK_URL=WEBHOOK, SLACK_CHANNEL_ID='C123')
    def test_falls_back_to_settings(self):
        config = SlackConfiguration.get_config()
        self.assertTrue(config.is_configured)
        self.assertEqual(config.effective_webhook_url, WEBHOOK)
        self.assertEqual(config.effective_channel, 'C123')

    def test_rejects_non_slack_url(self):
        config = SlackConfiguration.get_config()
        config.webhook_url = 'https://example.com/hook'
        self.assertFalse(config.is_configured)

    def test_disabled_config(self):
        config = SlackConfiguration.get_config()
        config.webhook_url = WEBHOOK
        config.is_enabled = False
        self.assertFalse(config.is_configured)

    @override_settings(SLACK_WEBHOOK_URL=WEBHOOK)
    def test_event_toggle(self):
        config = SlackConfiguration.get_config()
        config.notify_status_update = False
        self.assertTrue(config.is_event_enabled('new_request'))
        self.assertFalse(config.is_event_enabled('status_update'))


class MessageBuilderTest(TestCase):
    """Test the Slack Block Kit builders."""

    def setUp(self):
        self.delivery = lifecycle.create_request(
            pickup_location='Central Lab',
            delivery_location='Eastside Pharmacy',
            priority='urgent',
            package_type='specimen',
            requester_name='Robin Hale',
        )

    def _texts(self, blocks):
        texts = []
        for block in blocks:
            for field in block.get('fields', []):
                texts.append(field['text'])
            if isinstance(block.get('text'), dict):
                texts.append(block['text']['text'])
        return texts

    def test_new_request_message(self):
        text, blocks = services.build_new_request_message(self.delivery)
        self.assertIn(str(self.delivery.pk), text)
        texts = self._texts(blocks)
        self.assertIn('*Priority:*\nurgent', texts)
        self.assertIn('*Pickup:*\nCentral Lab', texts)
        self.assertIn('*Delivery:*\nEastside Pharmacy', texts)
        self.assertIn('*Requester:*\nRobin Hale', texts)
        self.assertEqual(blocks[0]['type'], 'header')

    def test_status_update_message(self):
        text, blocks = services.build_status_update_message(
            self.delivery, 'completed', 'Signed by reception'
        )
        self.assertTrue(text.startswith('✅'))
        texts = self._texts(blocks)
        self.assertIn('*Status:*\ncompleted', texts)
        self.assertIn(f'*Tracking ID:*\n{self.delivery.tracking_id}', texts)
        self.assertIn('*Note:*\nSigned by reception', texts)

    def test_exception_message(self):
        text, blocks = services.build_exception_message(self.delivery, 'Damaged', 'Cooler cracked')
        self.assertIn('Damaged', text)
        self.assertIn('*Reason:*\nCooler cracked', self._texts(blocks))


class SendSlackMessageTest(TestCase):
    """Test the webhook transport (mocked)."""

    def setUp(self):
        cache.delete('slack_configuration')

    @override_settings(SLACK_WEBHOOK_URL=WEBHOOK, SLACK_CHANNEL_ID='C123')
    @patch('notifications.services.requests.post')
    def test_posts_payload(self, mock_post):
        mock_post.return_value = MagicMock(status_code=200)

        self.assertTrue(services.send_slack_message('hello', blocks=[{'type': 'divider'}]))

        args, kwargs = mock_post.call_args
        self.assertEqual(args[0], WEBHOOK)
        self.assertEqual(kwargs['json'], {
            'text': 'hello', 'channel': 'C123', 'blocks': [{'type': 'divider'}],
        })
        self.assertEqual(kwargs['timeout'], 10)

    @override_settings(SLACK_WEBHOOK_URL='')
    def test_raises_when_not_configured(self):
        with self.assertRaises(services.SlackError):
            services.send_slack_message('hello')

    @override_settings(SLACK_WEBHOOK_URL=WEBHOOK)
    @patch('notifications.services.requests.post')
    def test_wraps_request_errors(self, mock_post):
        mock_post.side_effect = requests.ConnectionError('boom')
        with self.assertRaises(services.SlackError):
            services.send_slack_message('hello')

    @override_settings(SLACK_WEBHOOK_URL=WEBHOOK)
    @patch('notifications.services.requests.post')
    def test_status_change_notifies_slack(self, mock_post):
        """Creating and approving a request posts two messages."""
        mock_post.return_value = MagicMock(status_code=200)

        with self.captureOnCommitCallbacks(execute=True):
            delivery = lifecycle.create_request(pickup_location='A', delivery_location='B')
        with self.captureOnCommitCallbacks(execute=True):
            lifecycle.update_status(delivery, 'in_progress')

        self.assertEqual(mock_post.call_count, 2)
        texts = [c.kwargs['json']['text'] for c in mock_post.call_args_list]
        self.assertIn('New Delivery Request', texts[0])
        self.assertIn('in_progress', texts[1])

    @override_settings(SLACK_WEBHOOK_URL=WEBHOOK)
    @patch('notifications.services.requests.post')
    def test_status_message_carries_logged_note(self, mock_post):
        mock_post.return_value = MagicMock(status_code=200)
        delivery = lifecycle.create_request(pickup_location='A', delivery_location='B')

        with self.captureOnCommitCallbacks(execute=True):
            lifecycle.decline_request(delivery, reason='Outside service area')

        payload = json.dumps(mock_post.call_args.kwargs['json'])
        self.assertIn('Request declined: Outside service area', payload)

    @override_settings(SLACK_WEBHOOK_URL=WEBHOOK)
    @patch('notifications.services.requests.post')
    def test_nothing_sent_before_commit(self, mock_post):
        mock_post.return_value = MagicMock(status_code=200)

        with self.captureOnCommitCallbacks(execute=False) as callbacks:
            lifecycle.create_request(pickup_location='A', delivery_location='B')

        mock_post.assert_not_called()
        self.assertEqual(len(callbacks), 1)

    @override_settings(SLACK_WEBHOOK_URL=WEBHOOK)
    @patch('notifications.services.requests.post')
    def test_notify_swallows_failures(self, mock_post):
        mock_post.side_effect = requests.Timeout('slow')
        delivery = lifecycle.create_request(pickup_location='A', delivery_location='B')

        self.assertFalse(services.notify_status_update(delivery, 'completed'))

    @override_settings(SLACK_WEBHOOK_URL=WEBHOOK)
    @patch('notifications.services.requests.post')
    def test_notify_respects_toggle(self, mock_post):
        self.addCleanup(cache.delete, 'slack_configuration')
        config = SlackConfiguration.get_config()
        config.notify_new_request = False
        config.save()

        with self.captureOnCommitCallbacks(execute=True):
            lifecycle.create_request(pickup_location='A', delivery_location='B')

        mock_post.assert_not_called()


class SlackProxyViewTest(TestCase):
    """Test the /api/slack/send proxy."""

    def setUp(self):
        cache.delete('slack_configuration')
        self.client = APIClient()

    def test_missing_text_returns_400(self):
        response = self.client.post('/api/slack/send', {}, format='json')
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json(), {
            'success': False, 'error': 'Message text is required',
        })

    @override_settings(SLACK_WEBHOOK_URL=WEBHOOK)
    @patch('notifications.services.requests.post')
    def test_forwards_message(self, mock_post):
        mock_post.return_value = MagicMock(status_code=200)

        response = self.client.post('/api/slack/send', {
            'text': 'Courier delayed',
            'attachments': [{'color': '#ff0000'}],
        }, format='json')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {
            'success': True, 'message': 'Message sent to Slack successfully',
        })
        payload = mock_post.call_args.kwargs['json']
        self.assertEqual(payload['text'], 'Courier delayed')
        self.assertEqual(payload['attachments'], [{'color': '#ff0000'}])

    @override_settings(SLACK_WEBHOOK_URL=WEBHOOK)
    @patch('notifications.services.requests.post')
    def test_root_alias(self, mock_post):
        mock_post.return_value = MagicMock(status_code=200)
        response = self.client.post('/slack/send', {'text': 'ping'}, format='json')
        self.assertEqual(response.status_code, 200)

    @override_settings(SLACK_WEBHOOK_URL=WEBHOOK)
    @patch('notifications.services.requests.post')
    def test_webhook_failure_returns_500(self, mock_post):
        mock_post.side_effect = requests.ConnectionError('refused')
        response = self.client.post('/api/slack/send', {'text': 'ping'}, format='json')
        self.assertEqual(response.status_code, 500)
        self.assertFalse(response.json()['success'])
