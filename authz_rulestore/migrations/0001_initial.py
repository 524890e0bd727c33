from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="PolicyRule",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("ptype", models.CharField(max_length=18)),
                ("v0", models.CharField(blank=True, default="", max_length=125)),
                ("v1", models.CharField(blank=True, default="", max_length=125)),
                ("v2", models.CharField(blank=True, default="", max_length=125)),
                ("v3", models.CharField(blank=True, default="", max_length=125)),
                ("v4", models.CharField(blank=True, default="", max_length=125)),
                ("v5", models.CharField(blank=True, default="", max_length=125)),
            ],
            options={
                "verbose_name": "Policy rule",
                "verbose_name_plural": "Policy rules",
            },
        ),
        migrations.AddConstraint(
            model_name="policyrule",
            constraint=models.UniqueConstraint(
                fields=("ptype", "v0", "v1", "v2", "v3", "v4", "v5"),
                name="unique_policy_rule",
            ),
        ),
    ]
