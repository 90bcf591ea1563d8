"""
core - Core Logic Module

Contains the JSON value model, the JSON decoder every API response goes
through, and the error types shared by the rest of slk.
Part of slk - a terminal reader for Slack conversations.
"""
