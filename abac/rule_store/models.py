"""
ABAC Rule Store - Relational Rule Definitions
=============================================
AbacRuleGroup: nested AND/OR group, optionally bound to resource/action.
AbacRule: typed rule leaf with a JSON configuration payload.
"""

from __future__ import annotations

import uuid

from django.db import models


class LogicalOperatorChoice(models.TextChoices):
    AND = "AND", "AND"
    OR = "OR", "OR"


class RuleTypeChoice(models.TextChoices):
    ATTRIBUTE_COMPARISON = "AttributeComparison", "Attribute comparison"
    PROPERTY_MATCH = "PropertyMatch", "Property match"
    VALUE_RANGE = "ValueRange", "Value range"
    TIME_RESTRICTION = "TimeRestriction", "Time restriction"
    LOCATION_RESTRICTION = "LocationRestriction", "Location restriction"
    ATTRIBUTE_VALUE = "AttributeValue", "Attribute value"


class AbacRuleGroup(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    workstream_id = models.CharField(max_length=100)
    name = models.CharField(max_length=200)
    description = models.TextField(null=True, blank=True)
    parent = models.ForeignKey(
        "self",
        null=True,
        blank=True,
        on_delete=models.PROTECT,
        related_name="child_groups",
        db_column="parent_group_id",
    )
    logical_operator = models.CharField(
        max_length=3,
        choices=LogicalOperatorChoice.choices,
        default=LogicalOperatorChoice.AND,
    )
    resource = models.CharField(max_length=200, null=True, blank=True)
    action = models.CharField(max_length=100, null=True, blank=True)
    is_active = models.BooleanField(default=True)
    priority = models.IntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "abac_rule_groups"
        ordering = ["workstream_id", "priority", "name", "id"]
        indexes = [
            models.Index(fields=["workstream_id", "resource", "action"], name="idx_rule_group_binding"),
            models.Index(fields=["parent"], name="idx_rule_group_parent"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["workstream_id", "name"],
                name="uq_rule_group_workstream_name",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.workstream_id}:{self.name}"


class AbacRule(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    workstream_id = models.CharField(max_length=100)
    group = models.ForeignKey(
        AbacRuleGroup,
        null=True,
        blank=True,
        on_delete=models.CASCADE,
        related_name="rules",
        db_column="rule_group_id",
    )
    name = models.CharField(max_length=200)
    rule_type = models.CharField(max_length=50, choices=RuleTypeChoice.choices)
    configuration = models.JSONField(default=dict)
    is_active = models.BooleanField(default=True)
    priority = models.IntegerField(default=0)
    failure_message = models.CharField(max_length=500, null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "abac_rules"
        ordering = ["workstream_id", "priority", "name", "id"]
        indexes = [
            models.Index(fields=["workstream_id", "is_active"], name="idx_rule_ws_active"),
            models.Index(fields=["group"], name="idx_rule_group"),
        ]

    def __str__(self) -> str:
        return f"{self.workstream_id}:{self.rule_type}:{self.name}"
