"""
ABAC Rule Store - App Configuration
===================================
Persistent rule groups and rule leaves.
"""

from django.apps import AppConfig


class AbacRuleStoreConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "abac.rule_store"
    label = "abac_rule_store"
    verbose_name = "ABAC Rule Store"
