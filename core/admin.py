from django.contrib import admin

from .models import AuditLog


@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    list_display = ['created_at', 'user', 'action', 'target_repr', 'organization', 'ip_address']
    list_filter = ['action', 'created_at', 'organization']
    search_fields = ['user__username', 'user__first_name', 'target_repr', 'details']
    readonly_fields = ['user', 'action', 'content_type', 'object_id', 'target_repr',
                       'details', 'changes', 'ip_address', 'user_agent',
                       'organization', 'created_at']
    ordering = ['-created_at']
    date_hierarchy = 'created_at'

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return request.user.is_superuser
