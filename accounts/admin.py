from django.contrib import admin

from accounts.models import Profile


@admin.register(Profile)
class ProfileAdmin(admin.ModelAdmin):
    list_display = (
        "user",
        "contact_number",
        "whatsapp_opt_in",
        "has_push_token",
        "referral_code",
        "created_at",
    )
    list_filter = ("whatsapp_opt_in", "created_at")
    search_fields = ("user__username", "user__email", "contact_number", "referral_code")
    ordering = ("-created_at",)
    raw_id_fields = ("user",)

    fieldsets = (
        (
            "User",
            {"fields": ("user", "timezone")},
        ),
        (
            "Delivery Channels",
            {"fields": ("contact_number", "whatsapp_opt_in", "push_token")},
        ),
        (
            "Referrals",
            {"fields": ("referral_code",)},
        ),
    )

    @admin.display(boolean=True, description="Push")
    def has_push_token(self, obj):
        return bool(obj.push_token)
