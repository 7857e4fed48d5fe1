"""
Notifications App URL Configuration

- /api/slack/send - Slack webhook proxy
"""

from django.urls import path
from .views import SlackSendView

urlpatterns = [
    path('slack/send', SlackSendView.as_view(), name='slack-send'),
]
