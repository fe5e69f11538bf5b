"""Webhook adapters: Twilio SMS in, Slack events out."""
