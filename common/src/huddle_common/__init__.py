"""Huddle protocol shared by all huddle components."""
