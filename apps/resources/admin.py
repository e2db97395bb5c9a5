"""Admin registration for resources."""

from __future__ import annotations

from django.contrib import admin

from .models import Resource


@admin.register(Resource)
class ResourceAdmin(admin.ModelAdmin):
    list_display = ("title", "kind", "city", "owner", "capacity", "currency", "is_active", "created_at")
    list_filter = ("kind", "is_active", "currency")
    search_fields = ("title", "city", "owner__email")
    readonly_fields = ("created_at", "updated_at")
