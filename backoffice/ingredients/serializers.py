from rest_framework import serializers
from .models import MasterIngredient, UmbrellaIngredient


class MasterIngredientSerializer(serializers.ModelSerializer):
    class Meta:
        model = MasterIngredient
        fields = ['id', 'organization', 'product', 'item_code', 'vendor', 'category', 'sub_category',
                  'case_size', 'units_per_case', 'current_price', 'unit_of_measure', 'storage_area',
                  'created_at', 'updated_at']
        read_only_fields = ['organization', 'created_at', 'updated_at']

    def validate_units_per_case(self, value):
        if value <= 0:
            raise serializers.ValidationError("Units per case must be greater than zero")
        return value

    def validate_current_price(self, value):
        if value < 0:
            raise serializers.ValidationError("Price cannot be negative")
        return value


class UmbrellaIngredientSerializer(serializers.ModelSerializer):
    master_ingredients = serializers.PrimaryKeyRelatedField(many=True, read_only=True)
    master_ingredient_details = MasterIngredientSerializer(source='master_ingredients', many=True, read_only=True)

    class Meta:
        model = UmbrellaIngredient
        fields = ['id', 'organization', 'name', 'description', 'category', 'sub_category',
                  'master_ingredients', 'master_ingredient_details', 'primary_master_ingredient',
                  'created_at', 'updated_at']
        read_only_fields = ['organization', 'primary_master_ingredient', 'created_at', 'updated_at']


class UmbrellaMemberSerializer(serializers.Serializer):
    master_ingredient_id = serializers.IntegerField()
