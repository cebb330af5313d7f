"""Overriding settings for production."""

from server.settings.components import config

DEBUG = False

ALLOWED_HOSTS = config(
    'DJANGO_ALLOWED_HOSTS',
    cast=lambda hosts: [host.strip() for host in hosts.split(',')],
    default='',
)

SESSION_COOKIE_SECURE = True
CSRF_COOKIE_SECURE = True
