from rest_framework import serializers
from .models import User
from .permissions import ROLE_PERMISSIONS, get_permissions

class UserSerializer(serializers.ModelSerializer):
    permissions = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = ['id', 'email', 'first_name', 'last_name', 'role', 'phone', 'permissions']

    def get_permissions(self, obj):
        areas = sorted({area for matrix in ROLE_PERMISSIONS.values() for area in matrix})
        return {area: get_permissions(obj.role, area) for area in areas}
