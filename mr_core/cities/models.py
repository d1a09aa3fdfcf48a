# mr_core/cities/models.py
from django.db import models
from django.db.models.functions import Lower

from mr_core.common.models import UUIDModel


class City(UUIDModel):
    """
    Service city. Pricing rows and leads are scoped to a City.
    Name is unique case-insensitively ("Mumbai" == "mumbai").
    """
    name = models.CharField(max_length=128)
    state = models.CharField(max_length=128, blank=True, default="")
    is_active = models.BooleanField(default=True, db_index=True)

    class Meta:
        db_table = "cities_city"
        ordering = ["name"]
        constraints = [
            models.UniqueConstraint(Lower("name"), name="uq_city_name_ci"),
        ]
        verbose_name_plural = "cities"

    def __str__(self) -> str:
        return self.name
