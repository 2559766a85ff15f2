"""Warehouse Scheduling package.

This package is organized by feature modules (templates, employee_schedules,
publishing, notifications, ...) with a thin Flask controller layer and
service/repository layers underneath.
"""
