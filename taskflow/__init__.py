"""Taskflow: task tracker with threaded comments."""
