from django.db import models

NAME_MAX_LENGTH = 255
CURRENCY_CODE_MAX_LENGTH = 10


class Country(models.Model):
    # id: auto-generated
    name = models.CharField(max_length=NAME_MAX_LENGTH)
    # name_key: lowercased name, the upsert/lookup key
    name_key = models.CharField(max_length=NAME_MAX_LENGTH, unique=True)
    capital = models.CharField(max_length=200, null=True, blank=True)
    region = models.CharField(max_length=100, null=True, blank=True, db_index=True)
    # population: required (but default to 0 in case)
    population = models.BigIntegerField(default=0)
    # currency_code: first listed currency only; null when the country has none
    currency_code = models.CharField(max_length=CURRENCY_CODE_MAX_LENGTH, null=True, blank=True, db_index=True)
    # exchange_rate: external-sourced; allow null (when not available)
    exchange_rate = models.FloatField(null=True, blank=True)
    # estimated_gdp: 0 without a currency, null when the rate is missing
    estimated_gdp = models.FloatField(null=True, blank=True)
    flag_url = models.URLField(max_length=500, null=True, blank=True)
    # last_refreshed_at: one value shared by every row of a refresh batch
    last_refreshed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = 'countries'
        verbose_name_plural = 'countries'

    def save(self, *args, **kwargs):
        if self.name:
            self.name_key = self.name.lower()
        super().save(*args, **kwargs)

    def __str__(self):
        return self.name
