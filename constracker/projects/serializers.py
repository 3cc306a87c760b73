from rest_framework import serializers
from constracker.core.models import User
from .models import Project, ProjectAssignment, Milestone, Task


class ProjectSerializer(serializers.ModelSerializer):
    personnel_count = serializers.SerializerMethodField()

    class Meta:
        model = Project
        fields = ['id', 'name', 'location', 'budget', 'due_date', 'status', 'image', 'personnel_count', 'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']

    def get_personnel_count(self, obj):
        if hasattr(obj, 'personnel_total'):
            return obj.personnel_total
        return obj.assignments.count()

    def validate_budget(self, value):
        if value < 0:
            raise serializers.ValidationError("Budget cannot be negative")
        return value


class ProjectSelectionSerializer(serializers.ModelSerializer):
    class Meta:
        model = Project
        fields = ['id', 'name']


class PersonnelSerializer(serializers.ModelSerializer):
    user_id = serializers.IntegerField(source='user.id', read_only=True)
    full_name = serializers.CharField(source='user.full_name', read_only=True)
    email = serializers.EmailField(source='user.email', read_only=True)
    role = serializers.CharField(source='user.role', read_only=True)

    class Meta:
        model = ProjectAssignment
        fields = ['id', 'user_id', 'full_name', 'email', 'role', 'assigned_at']


class PersonnelAssignSerializer(serializers.Serializer):
    user_ids = serializers.ListField(child=serializers.IntegerField(min_value=1), allow_empty=False)

    def validate_user_ids(self, value):
        value = list(dict.fromkeys(value))
        found = set(User.objects.filter(pk__in=value).values_list('id', flat=True))
        missing = [pk for pk in value if pk not in found]
        if missing:
            raise serializers.ValidationError(f"Unknown users: {missing}")
        return value


class TaskSerializer(serializers.ModelSerializer):
    assigned_to_name = serializers.SerializerMethodField()

    class Meta:
        model = Task
        fields = ['id', 'milestone', 'name', 'description', 'status', 'due_date', 'assigned_to', 'assigned_to_name', 'created_at', 'updated_at']
        read_only_fields = ['milestone', 'created_at', 'updated_at']

    def get_assigned_to_name(self, obj):
        if not obj.assigned_to:
            return None
        return obj.assigned_to.full_name or obj.assigned_to.username


class MilestoneSerializer(serializers.ModelSerializer):
    progress = serializers.SerializerMethodField()
    task_count = serializers.SerializerMethodField()

    class Meta:
        model = Milestone
        fields = ['id', 'project', 'name', 'description', 'status', 'due_date', 'progress', 'task_count', 'created_at', 'updated_at']
        read_only_fields = ['project', 'created_at', 'updated_at']

    def get_progress(self, obj):
        return obj.get_progress()

    def get_task_count(self, obj):
        return obj.tasks.count()
