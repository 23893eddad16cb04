from django.db import migrations, models
import django.db.models.deletion
import django.utils.timezone
import email_tracking.models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="EmailRecord",
            fields=[
                ("id", models.CharField(max_length=255, primary_key=True, serialize=False)),
                ("sent_at", models.DateTimeField(default=django.utils.timezone.now)),
                (
                    "status",
                    models.CharField(
                        choices=[("sent", "Sent"), ("opened", "Opened"), ("clicked", "Clicked")],
                        default="sent",
                        max_length=20,
                    ),
                ),
                ("subject", models.CharField(blank=True, max_length=998)),
                ("recipient_email", models.CharField(blank=True, max_length=320)),
                ("open_count", models.PositiveIntegerField(default=0)),
                ("click_count", models.PositiveIntegerField(default=0)),
                ("attachment_downloads", models.PositiveIntegerField(default=0)),
                ("attachment_opens", models.PositiveIntegerField(default=0)),
                ("last_opened_at", models.DateTimeField(blank=True, null=True)),
                ("last_clicked_at", models.DateTimeField(blank=True, null=True)),
            ],
            options={
                "verbose_name": "Email Record",
                "verbose_name_plural": "Email Records",
                "ordering": ["-sent_at"],
                "indexes": [
                    models.Index(fields=["sent_at"], name="email_record_sent_at_idx"),
                    models.Index(fields=["recipient_email"], name="email_record_recipient_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="TrackedAttachment",
            fields=[
                ("id", models.CharField(max_length=255, primary_key=True, serialize=False)),
                ("secure_token", models.CharField(max_length=255)),
                ("original_file_name", models.CharField(max_length=255)),
                ("tracked_file_name", models.CharField(max_length=255)),
                ("content_type", models.CharField(blank=True, max_length=255)),
                (
                    "email",
                    models.ForeignKey(
                        db_constraint=False,
                        on_delete=django.db.models.deletion.DO_NOTHING,
                        related_name="attachments",
                        to="email_tracking.emailrecord",
                    ),
                ),
            ],
        ),
        migrations.CreateModel(
            name="OpenEvent",
            fields=[
                (
                    "id",
                    models.CharField(
                        default=email_tracking.models.generate_event_id,
                        editable=False,
                        max_length=64,
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                ("recipient_email", models.CharField(blank=True, max_length=320)),
                ("user_agent", models.TextField(blank=True)),
                ("ip_address", models.CharField(blank=True, max_length=64)),
                ("timestamp", models.DateTimeField(default=django.utils.timezone.now, editable=False)),
                (
                    "email",
                    models.ForeignKey(
                        db_constraint=False,
                        on_delete=django.db.models.deletion.DO_NOTHING,
                        related_name="opens",
                        to="email_tracking.emailrecord",
                    ),
                ),
            ],
            options={
                "ordering": ["-timestamp"],
                "indexes": [
                    models.Index(
                        fields=["email", "recipient_email", "timestamp"],
                        name="open_event_dedup_idx",
                    ),
                    models.Index(fields=["timestamp"], name="open_event_timestamp_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="ClickEvent",
            fields=[
                (
                    "id",
                    models.CharField(
                        default=email_tracking.models.generate_event_id,
                        editable=False,
                        max_length=64,
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                ("url", models.TextField()),
                ("recipient_email", models.CharField(blank=True, max_length=320)),
                ("user_agent", models.TextField(blank=True)),
                ("ip_address", models.CharField(blank=True, max_length=64)),
                ("timestamp", models.DateTimeField(default=django.utils.timezone.now, editable=False)),
                (
                    "email",
                    models.ForeignKey(
                        db_constraint=False,
                        on_delete=django.db.models.deletion.DO_NOTHING,
                        related_name="clicks",
                        to="email_tracking.emailrecord",
                    ),
                ),
            ],
            options={
                "ordering": ["-timestamp"],
                "indexes": [
                    models.Index(fields=["email", "timestamp"], name="click_event_email_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="AttachmentDownload",
            fields=[
                (
                    "id",
                    models.CharField(
                        default=email_tracking.models.generate_event_id,
                        editable=False,
                        max_length=64,
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                ("recipient_email", models.CharField(blank=True, max_length=320)),
                ("user_agent", models.TextField(blank=True)),
                ("ip_address", models.CharField(blank=True, max_length=64)),
                ("timestamp", models.DateTimeField(default=django.utils.timezone.now, editable=False)),
                (
                    "attachment",
                    models.ForeignKey(
                        db_constraint=False,
                        on_delete=django.db.models.deletion.DO_NOTHING,
                        related_name="downloads",
                        to="email_tracking.trackedattachment",
                    ),
                ),
            ],
            options={
                "ordering": ["-timestamp"],
            },
        ),
        migrations.CreateModel(
            name="Unsubscribe",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("recipient_email", models.CharField(blank=True, max_length=320)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "email",
                    models.ForeignKey(
                        db_constraint=False,
                        on_delete=django.db.models.deletion.DO_NOTHING,
                        related_name="unsubscribes",
                        to="email_tracking.emailrecord",
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "unique_together": {("email", "recipient_email")},
            },
        ),
    ]
