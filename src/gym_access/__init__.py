"""Gym access package.

QR-based check-in/out for a multi-branch gym, organized by feature modules
(access, qr, attendance, checkin, history) with a thin Flask controller layer
on top of service/repository layers.
"""
