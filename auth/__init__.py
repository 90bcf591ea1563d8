"""
auth - Authentication Module

Handles the Slack OAuth2 login (local HTTPS callback included) and the
storage of the resulting user token and the app's client credentials.
Part of slk - a terminal reader for Slack conversations.
"""
