import uuid

from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="AbacRuleGroup",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                ("workstream_id", models.CharField(max_length=100)),
                ("name", models.CharField(max_length=200)),
                ("description", models.TextField(blank=True, null=True)),
                (
                    "logical_operator",
                    models.CharField(
                        choices=[("AND", "AND"), ("OR", "OR")],
                        default="AND",
                        max_length=3,
                    ),
                ),
                ("resource", models.CharField(blank=True, max_length=200, null=True)),
                ("action", models.CharField(blank=True, max_length=100, null=True)),
                ("is_active", models.BooleanField(default=True)),
                ("priority", models.IntegerField(default=0)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "parent",
                    models.ForeignKey(
                        blank=True,
                        db_column="parent_group_id",
                        null=True,
                        on_delete=models.deletion.PROTECT,
                        related_name="child_groups",
                        to="abac_rule_store.abacrulegroup",
                    ),
                ),
            ],
            options={
                "db_table": "abac_rule_groups",
                "ordering": ["workstream_id", "priority", "name", "id"],
                "indexes": [
                    models.Index(
                        fields=["workstream_id", "resource", "action"],
                        name="idx_rule_group_binding",
                    ),
                    models.Index(fields=["parent"], name="idx_rule_group_parent"),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("workstream_id", "name"),
                        name="uq_rule_group_workstream_name",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="AbacRule",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                ("workstream_id", models.CharField(max_length=100)),
                ("name", models.CharField(max_length=200)),
                (
                    "rule_type",
                    models.CharField(
                        choices=[
                            ("AttributeComparison", "Attribute comparison"),
                            ("PropertyMatch", "Property match"),
                            ("ValueRange", "Value range"),
                            ("TimeRestriction", "Time restriction"),
                            ("LocationRestriction", "Location restriction"),
                            ("AttributeValue", "Attribute value"),
                        ],
                        max_length=50,
                    ),
                ),
                ("configuration", models.JSONField(default=dict)),
                ("is_active", models.BooleanField(default=True)),
                ("priority", models.IntegerField(default=0)),
                ("failure_message", models.CharField(blank=True, max_length=500, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "group",
                    models.ForeignKey(
                        blank=True,
                        db_column="rule_group_id",
                        null=True,
                        on_delete=models.deletion.CASCADE,
                        related_name="rules",
                        to="abac_rule_store.abacrulegroup",
                    ),
                ),
            ],
            options={
                "db_table": "abac_rules",
                "ordering": ["workstream_id", "priority", "name", "id"],
                "indexes": [
                    models.Index(fields=["workstream_id", "is_active"], name="idx_rule_ws_active"),
                    models.Index(fields=["group"], name="idx_rule_group"),
                ],
            },
        ),
    ]
