import uuid
import django.core.validators
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('movies', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Review',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('text', models.TextField()),
                ('rating', models.PositiveSmallIntegerField(validators=[django.core.validators.MinValueValidator(1), django.core.validators.MaxValueValidator(10)])),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('deleted_at', models.DateTimeField(blank=True, null=True)),
                ('author', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='reviews', to=settings.AUTH_USER_MODEL)),
                ('movie', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='reviews', to='movies.movie')),
            ],
            options={
                'db_table': 'reviews',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['movie', 'deleted_at'], name='reviews_movie_deleted_idx'),
                    models.Index(fields=['author', 'created_at'], name='reviews_author_created_idx'),
                    models.Index(fields=['created_at'], name='reviews_created_at_idx'),
                ],
                'constraints': [
                    models.UniqueConstraint(condition=models.Q(deleted_at__isnull=True), fields=('author', 'movie'), name='unique_active_review_per_author_movie'),
                    models.CheckConstraint(condition=models.Q(rating__gte=1, rating__lte=10), name='review_rating_range'),
                ],
            },
        ),
    ]
