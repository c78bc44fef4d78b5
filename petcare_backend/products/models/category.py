# products/models/category.py

from django.db import models


class Category(models.Model):
    """Product grouping (food, accessories, hygiene, medicine...)."""

    name = models.CharField(max_length=120, unique=True)
    description = models.TextField(blank=True)
    is_active = models.BooleanField(default=True)

    class Meta:
        ordering = ["name"]
        verbose_name_plural = "categories"

    def __str__(self):
        return self.name
