from django.db import transaction
from django.db.models import F, Max

from .models import Country

SORT_ORDERS = {
    "gdp_desc": F("estimated_gdp").desc(nulls_last=True),
    "gdp_asc": F("estimated_gdp").asc(nulls_last=True),
}


class CountryStore:
    """
    Access to persisted countries, keyed by ``name_key``.

    The refresh service borrows a store for one transaction; connections are
    owned by Django, never by the store.
    """

    model = Country

    def __init__(self, using=None):
        self.using = using

    @property
    def objects(self):
        manager = self.model.objects
        return manager.using(self.using) if self.using else manager.all()

    def atomic(self):
        return transaction.atomic(using=self.using)

    def upsert(self, record, refreshed_at):
        """Insert ``record`` or overwrite every field of the row sharing its name_key."""
        defaults = record.as_defaults()
        defaults["last_refreshed_at"] = refreshed_at
        country, _ = self.objects.update_or_create(name_key=record.name_key, defaults=defaults)
        return country

    def all(self):
        return list(self.objects.order_by("id"))

    def filter(self, region=None, currency_code=None, sort=None):
        qs = self.objects
        if region:
            qs = qs.filter(region__iexact=region)
        if currency_code:
            qs = qs.filter(currency_code=currency_code.upper())
        if sort:
            qs = qs.order_by(SORT_ORDERS[sort], "id")
        else:
            qs = qs.order_by("id")
        return qs

    def get_by_name(self, name):
        return self.objects.filter(name_key=name.lower()).first()

    def delete_by_name(self, name):
        deleted, _ = self.objects.filter(name_key=name.lower()).delete()
        return deleted > 0

    def count(self):
        return self.objects.count()

    def last_refreshed_at(self):
        return self.objects.aggregate(last=Max("last_refreshed_at"))["last"]
