"""
ABAC Attribute Store - App Configuration
========================================
Persistent user, group and role attribute records.
"""

from django.apps import AppConfig


class AbacAttributeStoreConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "abac.attribute_store"
    label = "abac_attribute_store"
    verbose_name = "ABAC Attribute Store"
