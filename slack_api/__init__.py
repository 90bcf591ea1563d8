"""
slack_api - Slack Web API Module

HTTP calls to the Slack Web API, extraction of messages, conversations and
user names from decoded responses, and thread-URL parsing.
Part of slk - a terminal reader for Slack conversations.
"""
