import uuid
from decimal import Decimal
import django.core.validators
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='Movie',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('title', models.CharField(max_length=255)),
                ('description', models.TextField()),
                ('release_date', models.DateField()),
                ('duration', models.PositiveIntegerField(help_text='Duration in minutes', validators=[django.core.validators.MinValueValidator(1)])),
                ('genre', models.CharField(max_length=255)),
                ('director', models.CharField(max_length=255)),
                ('rating', models.DecimalField(blank=True, decimal_places=1, editable=False, max_digits=3, null=True, validators=[django.core.validators.MinValueValidator(Decimal('1.0')), django.core.validators.MaxValueValidator(Decimal('10.0'))])),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('deleted_at', models.DateTimeField(blank=True, null=True)),
            ],
            options={
                'db_table': 'movies',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['title'], name='movies_title_idx'),
                    models.Index(fields=['rating'], name='movies_rating_idx'),
                    models.Index(fields=['release_date'], name='movies_release_date_idx'),
                    models.Index(fields=['deleted_at'], name='movies_deleted_at_idx'),
                ],
                'constraints': [
                    models.CheckConstraint(
                        condition=models.Q(rating__isnull=True) | models.Q(rating__gte=Decimal('1.0'), rating__lte=Decimal('10.0')),
                        name='movie_rating_range',
                    ),
                ],
            },
        ),
    ]
