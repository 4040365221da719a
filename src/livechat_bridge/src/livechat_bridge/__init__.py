"""Livechat bridge between visitors and a Dialogflow agent."""
