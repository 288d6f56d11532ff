"""
Test suite for the ingredients module
Tests: master ingredient CRUD and filtering, umbrella ingredient membership and primary selection
"""
from decimal import Decimal
from django.test import TestCase
from rest_framework import status
from backoffice.core.models import ActivityLog
from backoffice.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backoffice.ingredients.models import MasterIngredient, UmbrellaIngredientMember
from backoffice.ingredients.umbrella import (
    add_master_ingredient, remove_master_ingredient, set_primary_master_ingredient,
)


class UmbrellaMembershipTests(TestCase):
    """Test umbrella ingredient membership rules"""

    def setUp(self):
        self.organization = TestDataFactory.create_organization()
        self.umbrella = TestDataFactory.create_umbrella(self.organization, name='Tomatoes')
        self.roma = TestDataFactory.create_ingredient(self.organization, product='Roma Tomato')
        self.cherry = TestDataFactory.create_ingredient(self.organization, product='Cherry Tomato')

    def test_add_is_idempotent(self):
        self.assertTrue(add_master_ingredient(self.umbrella, self.roma))
        self.assertFalse(add_master_ingredient(self.umbrella, self.roma))
        self.assertEqual(UmbrellaIngredientMember.objects.filter(umbrella_ingredient=self.umbrella).count(), 1)

    def test_add_rejects_other_organization(self):
        other = TestDataFactory.create_organization()
        foreign = TestDataFactory.create_ingredient(other)
        with self.assertRaises(ValueError):
            add_master_ingredient(self.umbrella, foreign)

    def test_primary_must_be_member(self):
        with self.assertRaises(ValueError):
            set_primary_master_ingredient(self.umbrella, self.roma)
        add_master_ingredient(self.umbrella, self.roma)
        set_primary_master_ingredient(self.umbrella, self.roma)
        self.umbrella.refresh_from_db()
        self.assertEqual(self.umbrella.primary_master_ingredient, self.roma)

    def test_removing_primary_clears_it(self):
        add_master_ingredient(self.umbrella, self.roma)
        add_master_ingredient(self.umbrella, self.cherry)
        set_primary_master_ingredient(self.umbrella, self.roma)
        remove_master_ingredient(self.umbrella, self.roma)
        self.umbrella.refresh_from_db()
        self.assertIsNone(self.umbrella.primary_master_ingredient)
        self.assertEqual(list(self.umbrella.master_ingredients.all()), [self.cherry])

    def test_remove_non_member(self):
        with self.assertRaises(ValueError):
            remove_master_ingredient(self.umbrella, self.cherry)


class MasterIngredientAPITests(TestCase):
    """Test master ingredient endpoints"""

    def setUp(self):
        self.organization = TestDataFactory.create_organization()
        self.user, _ = TestDataFactory.create_user_with_role(self.organization, 'owner')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_create_ingredient(self):
        response = self.client.post('/api/v1/master-ingredients/', {
            'product': 'Yellow Onion',
            'item_code': 'ON-50',
            'vendor': 'Sysco',
            'units_per_case': '50',
            'current_price': '32.50',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        ingredient = MasterIngredient.objects.get(pk=response.data['id'])
        self.assertEqual(ingredient.organization, self.organization)
        self.assertEqual(ingredient.current_price, Decimal('32.50'))
        self.assertTrue(ActivityLog.objects.filter(activity_type='master_ingredient_created').exists())

    def test_negative_price_rejected(self):
        response = self.client.post('/api/v1/master-ingredients/', {
            'product': 'Bad',
            'current_price': '-1.00',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_list_is_paginated_and_searchable(self):
        for index, name in enumerate(('Basil', 'Butter', 'Carrot')):
            TestDataFactory.create_ingredient(self.organization, product=name, item_code=f'X{index}')
        response = self.client.get('/api/v1/master-ingredients/?search=b&limit=1')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 2)
        self.assertEqual(response.data['total_pages'], 2)
        self.assertEqual(response.data['results'][0]['product'], 'Basil')
        self.assertEqual(response.data['next'], 2)

    def test_other_organization_hidden(self):
        other = TestDataFactory.create_organization()
        foreign = TestDataFactory.create_ingredient(other)
        response = self.client.get(f'/api/v1/master-ingredients/{foreign.id}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_team_member_cannot_create(self):
        cook, _ = TestDataFactory.create_user_with_role(self.organization, 'team_member')
        client = AuthenticatedAPIClient().authenticate_user(cook)
        response = client.post('/api/v1/master-ingredients/', {'product': 'Salt'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class UmbrellaIngredientAPITests(TestCase):
    """Test umbrella ingredient endpoints"""

    def setUp(self):
        self.organization = TestDataFactory.create_organization()
        self.user, _ = TestDataFactory.create_user_with_role(self.organization, 'owner')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.umbrella = TestDataFactory.create_umbrella(self.organization)
        self.ingredient = TestDataFactory.create_ingredient(self.organization)

    def test_add_member_then_primary(self):
        url = f'/api/v1/umbrella-ingredients/{self.umbrella.id}/'
        response = self.client.post(url + 'members/', {'master_ingredient_id': self.ingredient.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['master_ingredients'], [self.ingredient.id])

        response = self.client.post(url + 'members/', {'master_ingredient_id': self.ingredient.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        response = self.client.post(url + 'primary/', {'master_ingredient_id': self.ingredient.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['primary_master_ingredient'], self.ingredient.id)

    def test_primary_requires_membership(self):
        response = self.client.post(
            f'/api/v1/umbrella-ingredients/{self.umbrella.id}/primary/',
            {'master_ingredient_id': self.ingredient.id}, format='json',
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('error', response.data)

    def test_remove_member(self):
        add_master_ingredient(self.umbrella, self.ingredient)
        response = self.client.delete(
            f'/api/v1/umbrella-ingredients/{self.umbrella.id}/members/{self.ingredient.id}/'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['master_ingredients'], [])
