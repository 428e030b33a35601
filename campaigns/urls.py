from django.urls import path
from . import views

urlpatterns = [
    # Campaign list and creation
    path('', views.campaign_list, name='campaign_list'),
    path('form/', views.campaign_form_options, name='campaign_form_options'),
    path('create/', views.campaign_create, name='campaign_create'),
    path('ai-create/', views.campaign_ai_create, name='campaign_ai_create'),
    path('<int:campaign_id>/', views.campaign_detail, name='campaign_detail'),

    # Lifecycle actions
    path('<int:campaign_id>/destroy/', views.campaign_destroy, name='campaign_destroy'),
    path('<int:campaign_id>/pause/', views.campaign_pause, name='campaign_pause'),
    path('<int:campaign_id>/resume/', views.campaign_resume, name='campaign_resume'),
]
