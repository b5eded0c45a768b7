"""Attendance Alerts package.

The notification engine of the attendance portal, organized by feature modules
(templates, channels, delivery, recipients, dispatch, scheduling, ...) with a
thin Flask controller layer and service/repository layers.
"""
