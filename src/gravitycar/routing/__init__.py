"""Routing — route registry, path scoring and request dispatch.

Routes are discovered (or loaded from the route cache) when the app
freezes and grouped by method and path length for matching.
"""
