"""
ABAC Attribute Store - Relational Attribute Records
===================================================
One row per (subject, workstream) per scope. ``attributes`` holds the
JSON key/value map read by DbAttributeStore.
"""

from __future__ import annotations

from django.db import models


class UserAttribute(models.Model):
    user_id = models.CharField(max_length=255)
    workstream_id = models.CharField(max_length=100)
    attributes = models.JSONField(default=dict)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "abac_user_attributes"
        ordering = ["workstream_id", "user_id", "id"]
        constraints = [
            models.UniqueConstraint(
                fields=["user_id", "workstream_id"],
                name="uq_user_attribute_workstream",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.workstream_id}:user:{self.user_id}"


class GroupAttribute(models.Model):
    group_id = models.CharField(max_length=255)
    workstream_id = models.CharField(max_length=100)
    attributes = models.JSONField(default=dict)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "abac_group_attributes"
        ordering = ["workstream_id", "group_id", "id"]
        indexes = [
            models.Index(fields=["workstream_id", "is_active"], name="idx_group_attr_ws_active"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["group_id", "workstream_id"],
                name="uq_group_attribute_workstream",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.workstream_id}:group:{self.group_id}"


class RoleAttribute(models.Model):
    role_id = models.CharField(max_length=255)
    workstream_id = models.CharField(max_length=100)
    attributes = models.JSONField(default=dict)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "abac_role_attributes"
        ordering = ["workstream_id", "role_id", "id"]
        constraints = [
            models.UniqueConstraint(
                fields=["role_id", "workstream_id"],
                name="uq_role_attribute_workstream",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.workstream_id}:role:{self.role_id}"
