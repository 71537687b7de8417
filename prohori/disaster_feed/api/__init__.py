# -*- coding: utf-8 -*-
"""Disaster feed REST API."""

from prohori.disaster_feed.api.router import router

__all__ = ["router"]
