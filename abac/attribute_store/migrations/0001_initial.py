from django.db import migrations, models


def _id_field():
    return models.BigAutoField(
        auto_created=True,
        primary_key=True,
        serialize=False,
        verbose_name="ID",
    )


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="UserAttribute",
            fields=[
                ("id", _id_field()),
                ("user_id", models.CharField(max_length=255)),
                ("workstream_id", models.CharField(max_length=100)),
                ("attributes", models.JSONField(default=dict)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "db_table": "abac_user_attributes",
                "ordering": ["workstream_id", "user_id", "id"],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("user_id", "workstream_id"),
                        name="uq_user_attribute_workstream",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="GroupAttribute",
            fields=[
                ("id", _id_field()),
                ("group_id", models.CharField(max_length=255)),
                ("workstream_id", models.CharField(max_length=100)),
                ("attributes", models.JSONField(default=dict)),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "db_table": "abac_group_attributes",
                "ordering": ["workstream_id", "group_id", "id"],
                "indexes": [
                    models.Index(
                        fields=["workstream_id", "is_active"],
                        name="idx_group_attr_ws_active",
                    ),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("group_id", "workstream_id"),
                        name="uq_group_attribute_workstream",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="RoleAttribute",
            fields=[
                ("id", _id_field()),
                ("role_id", models.CharField(max_length=255)),
                ("workstream_id", models.CharField(max_length=100)),
                ("attributes", models.JSONField(default=dict)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "db_table": "abac_role_attributes",
                "ordering": ["workstream_id", "role_id", "id"],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("role_id", "workstream_id"),
                        name="uq_role_attribute_workstream",
                    ),
                ],
            },
        ),
    ]
