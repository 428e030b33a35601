from django.contrib import admin
from .models import NodeBoss, NodeShare, NodeSell, NodeReferral


class NodeShareInline(admin.TabularInline):
    model = NodeShare
    extra = 0
    readonly_fields = ['sold', 'remaining', 'created_at']


@admin.register(NodeBoss)
class NodeBossAdmin(admin.ModelAdmin):
    list_display = ['name', 'price', 'status', 'created_at']
    list_filter = ['status']
    search_fields = ['name']
    inlines = [NodeShareInline]


@admin.register(NodeSell)
class NodeSellAdmin(admin.ModelAdmin):
    list_display = ['certificate_id', 'buyer_name', 'node_boss', 'amount', 'status', 'purchase_date']
    list_filter = ['status', 'node_boss', 'payment_method']
    search_fields = ['certificate_id', 'buyer_name', 'buyer_email', 'transaction_id']
    raw_id_fields = ['user', 'node_share', 'node_referral']
    readonly_fields = ['created_at', 'updated_at']


@admin.register(NodeReferral)
class NodeReferralAdmin(admin.ModelAdmin):
    list_display = ['referral_link', 'user', 'node_boss', 'commission_percentage', 'is_big_boss', 'level', 'status']
    list_filter = ['status', 'is_big_boss', 'node_boss']
    search_fields = ['referral_link', 'user__username', 'user__email']
    raw_id_fields = ['user', 'node_share', 'node_sell', 'parent_referral']
