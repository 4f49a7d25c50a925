from rest_framework import serializers
from .models import Hive, Inspection


STORE_LEVELS = ["heavy", "moderate", "light", "none"]


class QueenSectionSerializer(serializers.Serializer):
    present = serializers.BooleanField(required=False)
    marked = serializers.BooleanField(required=False)
    clipped = serializers.BooleanField(required=False)
    notes = serializers.CharField(required=False, allow_blank=True)


class BroodSectionSerializer(serializers.Serializer):
    frames = serializers.FloatField(required=False, min_value=0, max_value=10)
    pattern = serializers.ChoiceField(choices=["excellent", "good", "spotty", "poor"], required=False)
    notes = serializers.CharField(required=False, allow_blank=True)


class StrengthSectionSerializer(serializers.Serializer):
    frames = serializers.FloatField(required=False, min_value=0, max_value=10)
    population = serializers.ChoiceField(choices=["strong", "moderate", "weak"], required=False)
    notes = serializers.CharField(required=False, allow_blank=True)


class StoresSectionSerializer(serializers.Serializer):
    honey = serializers.ChoiceField(choices=STORE_LEVELS, required=False)
    pollen = serializers.ChoiceField(choices=STORE_LEVELS, required=False)
    notes = serializers.CharField(required=False, allow_blank=True)


class TemperamentSectionSerializer(serializers.Serializer):
    rating = serializers.ChoiceField(choices=["calm", "moderate", "aggressive"], required=False)
    notes = serializers.CharField(required=False, allow_blank=True)


class HealthSectionSerializer(serializers.Serializer):
    pests = serializers.ListField(child=serializers.CharField(), required=False)
    diseases = serializers.ListField(child=serializers.CharField(), required=False)
    notes = serializers.CharField(required=False, allow_blank=True)


class InspectionSectionsSerializer(serializers.Serializer):
    """Structured checklist sections recorded during an inspection"""

    queen = QueenSectionSerializer(required=False)
    brood = BroodSectionSerializer(required=False)
    strength = StrengthSectionSerializer(required=False)
    stores = StoresSectionSerializer(required=False)
    temperament = TemperamentSectionSerializer(required=False)
    health = HealthSectionSerializer(required=False)


class CreateInspectionSerializer(serializers.ModelSerializer):
    """Validate an offline-captured inspection payload before it is persisted"""

    hive_id = serializers.PrimaryKeyRelatedField(
        source="hive",
        queryset=Hive.objects.all(),
        pk_field=serializers.UUIDField(),
        write_only=True,
    )
    location_lat = serializers.FloatField(required=False, allow_null=True, min_value=-90, max_value=90)
    location_lng = serializers.FloatField(required=False, allow_null=True, min_value=-180, max_value=180)
    location_accuracy_m = serializers.FloatField(required=False, allow_null=True, min_value=0)
    sections_json = InspectionSectionsSerializer(required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)

    class Meta:
        model = Inspection
        fields = [
            "hive_id",
            "started_at",
            "ended_at",
            "offline_created_at",
            "location_lat",
            "location_lng",
            "location_accuracy_m",
            "sections_json",
            "notes",
        ]

    def validate(self, attrs):
        started_at = attrs.get("started_at")
        ended_at = attrs.get("ended_at")
        if started_at and ended_at and ended_at < started_at:
            raise serializers.ValidationError({"ended_at": "ended_at cannot be earlier than started_at."})
        return attrs
