"""
Notifications App - Slack Proxy View

POST /api/slack/send (also /slack/send)

Forwards a message from the dashboard to the configured Slack webhook
so the webhook URL never reaches the browser.
"""

import logging

from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from .services import send_slack_message, SlackError

logger = logging.getLogger(__name__)


class SlackSendView(APIView):
    """
    Request body:
    {
        "text": "...",          # required
        "blocks": [...],        # optional Block Kit layout
        "attachments": [...]    # optional
    }
    """

    permission_classes = [AllowAny]
    authentication_classes = []

    def post(self, request):
        data = request.data if hasattr(request.data, 'get') else {}
        text = data.get('text')

        if not text:
            return Response(
                {'success': False, 'error': 'Message text is required'},
                status=status.HTTP_400_BAD_REQUEST
            )

        try:
            send_slack_message(
                text,
                blocks=data.get('blocks'),
                attachments=data.get('attachments'),
            )
        except SlackError as e:
            logger.error(f"[SLACK] Proxy send failed: {e}")
            return Response(
                {'success': False, 'error': str(e)},
                status=status.HTTP_500_INTERNAL_SERVER_ERROR
            )

        return Response({'success': True, 'message': 'Message sent to Slack successfully'})
