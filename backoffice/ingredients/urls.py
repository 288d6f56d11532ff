from django.urls import path
from .views import (
    master_ingredient_list_create, master_ingredient_detail,
    umbrella_ingredient_list_create, umbrella_ingredient_detail,
    umbrella_member_add, umbrella_member_remove, umbrella_primary_set,
)

urlpatterns = [
    path('master-ingredients/', master_ingredient_list_create, name='master-ingredient-list-create'),
    path('master-ingredients/<int:pk>/', master_ingredient_detail, name='master-ingredient-detail'),
    path('umbrella-ingredients/', umbrella_ingredient_list_create, name='umbrella-ingredient-list-create'),
    path('umbrella-ingredients/<int:pk>/', umbrella_ingredient_detail, name='umbrella-ingredient-detail'),
    path('umbrella-ingredients/<int:pk>/members/', umbrella_member_add, name='umbrella-member-add'),
    path('umbrella-ingredients/<int:pk>/members/<int:ingredient_id>/', umbrella_member_remove, name='umbrella-member-remove'),
    path('umbrella-ingredients/<int:pk>/primary/', umbrella_primary_set, name='umbrella-primary-set'),
]
