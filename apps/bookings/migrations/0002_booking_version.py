from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ("bookings", "0001_initial"),
    ]

    operations = [
        migrations.AddField(
            model_name="booking",
            name="version",
            field=models.PositiveIntegerField(
                default=0,
                editable=False,
                help_text="Incremented on every update; writes compare it to reject stale copies.",
            ),
        ),
    ]
