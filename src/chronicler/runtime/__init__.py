"""Scheduling, alert dispatch and agent wiring."""
