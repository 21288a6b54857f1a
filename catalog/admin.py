# apps/catalog/admin.py
"""Django Admin для каталога."""

from django.contrib import admin

from .models import Vendor, MenuItem


class MenuItemInline(admin.TabularInline):
    """Inline для позиций меню."""
    model = MenuItem
    extra = 0
    fields = ['name', 'category', 'price', 'is_available']


@admin.register(Vendor)
class VendorAdmin(admin.ModelAdmin):
    """Admin для заведений."""

    list_display = ['name', 'minimum_order', 'is_active', 'created_at']
    list_filter = ['is_active']
    search_fields = ['name', 'address']
    readonly_fields = ['id', 'created_at']
    inlines = [MenuItemInline]


@admin.register(MenuItem)
class MenuItemAdmin(admin.ModelAdmin):
    """Admin для позиций меню."""

    list_display = ['name', 'vendor', 'category', 'price', 'is_available']
    list_filter = ['is_available', 'category', 'vendor']
    search_fields = ['name', 'vendor__name']
    list_editable = ['is_available']
