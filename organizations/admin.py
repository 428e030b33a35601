from django.contrib import admin

from .models import Organization, OrganizationMember


class OrganizationMemberInline(admin.TabularInline):
    model = OrganizationMember
    extra = 0
    raw_id_fields = ['user']


@admin.register(Organization)
class OrganizationAdmin(admin.ModelAdmin):
    list_display = ['name', 'owner', 'timezone', 'is_active', 'created_at']
    list_filter = ['is_active', 'timezone']
    search_fields = ['name', 'owner__username', 'email']
    raw_id_fields = ['owner']
    inlines = [OrganizationMemberInline]


@admin.register(OrganizationMember)
class OrganizationMemberAdmin(admin.ModelAdmin):
    list_display = ['user', 'organization', 'role', 'is_active']
    list_filter = ['role', 'is_active', 'organization']
    search_fields = ['user__username', 'organization__name']
    raw_id_fields = ['user', 'organization']
