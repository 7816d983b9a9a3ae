"""Serverless function entrypoints."""
