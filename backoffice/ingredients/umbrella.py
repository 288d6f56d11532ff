"""Umbrella ingredient membership operations"""
import logging

from django.db import transaction

from .models import UmbrellaIngredientMember

logger = logging.getLogger(__name__)


def add_master_ingredient(umbrella, master_ingredient):
    """Link a master ingredient; adding an existing member is a no-op"""
    if master_ingredient.organization_id != umbrella.organization_id:
        raise ValueError("Master ingredient belongs to another organization")
    membership, created = UmbrellaIngredientMember.objects.get_or_create(
        umbrella_ingredient=umbrella,
        master_ingredient=master_ingredient,
    )
    if created:
        logger.info(f"Added master ingredient {master_ingredient.id} to umbrella {umbrella.id}")
    return created


def remove_master_ingredient(umbrella, master_ingredient):
    """Unlink a master ingredient; removing the primary clears it"""
    with transaction.atomic():
        deleted, _ = UmbrellaIngredientMember.objects.filter(
            umbrella_ingredient=umbrella,
            master_ingredient=master_ingredient,
        ).delete()
        if not deleted:
            raise ValueError("Master ingredient is not part of this umbrella ingredient")
        if umbrella.primary_master_ingredient_id == master_ingredient.id:
            umbrella.primary_master_ingredient = None
            umbrella.save(update_fields=['primary_master_ingredient', 'updated_at'])
    return umbrella


def set_primary_master_ingredient(umbrella, master_ingredient):
    """The primary must already be a member"""
    is_member = UmbrellaIngredientMember.objects.filter(
        umbrella_ingredient=umbrella,
        master_ingredient=master_ingredient,
    ).exists()
    if not is_member:
        raise ValueError("Primary ingredient must be a member of the umbrella ingredient")
    umbrella.primary_master_ingredient = master_ingredient
    umbrella.save(update_fields=['primary_master_ingredient', 'updated_at'])
    return umbrella
