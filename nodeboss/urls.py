from django.urls import path
from . import views

urlpatterns = [
    path('referrals/', views.referral_list, name='node_referral_list'),

    # Share purchases
    path('<int:node_boss_id>/buy/', views.node_sell_create, name='node_sell_create'),
    path('sells/<int:node_sell_id>/complete/', views.node_sell_complete, name='node_sell_complete'),
    path('sells/<int:node_sell_id>/cancel/', views.node_sell_cancel, name='node_sell_cancel'),
]
