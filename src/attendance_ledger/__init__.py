"""Attendance & leave ledger package.

Organized by feature modules (locations, shifts, attendance, leave, ...) with a
thin Flask controller layer over service/repository layers.
"""
