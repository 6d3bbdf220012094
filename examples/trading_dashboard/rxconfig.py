"""Reflex configuration for the trading dashboard demo app."""

import reflex as rx

config = rx.Config(
    app_name="trading_dashboard",
    plugins=[rx.plugins.SitemapPlugin()],
)
