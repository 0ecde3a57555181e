from rest_framework import serializers
from .models import Country, NAME_MAX_LENGTH


class CountrySerializer(serializers.ModelSerializer):
    class Meta:
        model = Country
        fields = [
            'id', 'name', 'capital', 'region', 'population',
            'currency_code', 'exchange_rate', 'estimated_gdp',
            'flag_url', 'last_refreshed_at'
        ]
        read_only_fields = fields


class RefreshRecordSerializer(serializers.Serializer):
    """
    Validation rules for a record coming from the external feeds:
    - name is required, non-blank and fits the name/name_key columns
    - population is required (0 is valid)
    """
    name = serializers.CharField(max_length=NAME_MAX_LENGTH)
    population = serializers.IntegerField(min_value=0)
