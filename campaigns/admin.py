from django.contrib import admin
from django.utils.html import format_html
from django.utils.translation import gettext_lazy as _
from .models import ContentItem, Campaign, CampaignContent, ScheduledDrop, SendJob


class CampaignContentInline(admin.TabularInline):
    model = CampaignContent
    extra = 0
    raw_id_fields = ['content_item']
    ordering = ['position']


@admin.register(ContentItem)
class ContentItemAdmin(admin.ModelAdmin):
    list_display = ['title', 'organization', 'content_type', 'is_ai_generated', 'created_at']
    list_filter = ['content_type', 'is_ai_generated', 'organization']
    search_fields = ['title', 'body']


@admin.register(Campaign)
class CampaignAdmin(admin.ModelAdmin):
    list_display = [
        'name', 'organization', 'status', 'start_date', 'end_date',
        'send_time_local', 'timezone', 'drop_progress', 'created_at'
    ]
    list_filter = ['status', 'organization', 'created_at']
    search_fields = ['name', 'prompt']
    filter_horizontal = ['recipients']
    readonly_fields = ['cancelled_at', 'created_at', 'updated_at']
    inlines = [CampaignContentInline]

    fieldsets = (
        (None, {
            'fields': ('name', 'organization', 'status', 'created_by')
        }),
        (_('Schedule'), {
            'fields': ('start_date', 'end_date', 'send_time_local', 'timezone')
        }),
        (_('Delivery'), {
            'fields': ('channels', 'recipients')
        }),
        (_('AI Generation'), {
            'fields': ('prompt', 'content_type', 'content_count'),
            'classes': ('collapse',)
        }),
        (_('Timestamps'), {
            'fields': ('cancelled_at', 'created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )

    def drop_progress(self, obj):
        drops = obj.scheduled_drops.all()
        total = drops.count()
        if total == 0:
            return "-"
        sent = drops.filter(status=ScheduledDrop.STATUS_SENT).count()
        cancelled = drops.filter(status=ScheduledDrop.STATUS_CANCELLED).count()
        return format_html(
            '<span style="color: green;">{}</span> / '
            '<span style="color: gray;">{}</span> / {}',
            sent,
            cancelled,
            total
        )
    drop_progress.short_description = _('Sent / Cancelled / Total')


@admin.register(ScheduledDrop)
class ScheduledDropAdmin(admin.ModelAdmin):
    list_display = ['campaign', 'sequence', 'drop_date', 'publish_at_utc', 'status', 'content_item']
    list_filter = ['status', 'drop_date']
    search_fields = ['campaign__name']
    raw_id_fields = ['campaign', 'content_item']
    readonly_fields = ['expanded_at', 'sent_at', 'created_at']


@admin.register(SendJob)
class SendJobAdmin(admin.ModelAdmin):
    list_display = ['drop', 'recipient', 'channel', 'status', 'sent_at']
    list_filter = ['status', 'channel']
    search_fields = ['recipient__username', 'drop__campaign__name']
    raw_id_fields = ['drop', 'recipient']
    readonly_fields = ['sent_at', 'updated_at', 'error_message']
