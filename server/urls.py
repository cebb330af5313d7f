"""URL configuration.

The public HTTP API lives outside this service; only the admin
is routed here.
"""

from django.contrib import admin
from django.urls import path

urlpatterns = [
    path('admin/', admin.site.urls),
]
