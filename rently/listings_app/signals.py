from django.contrib.auth import get_user_model
from django.db.models.signals import post_save
from django.dispatch import receiver

from listings_app.models import UserProfile


@receiver(post_save, sender=get_user_model())
def ensure_profile(sender, instance, created, **kwargs):
    """Every account gets a profile; superusers start out as platform admins."""
    if not created:
        return
    role = UserProfile.ROLE_ADMIN if instance.is_superuser else UserProfile.ROLE_TENANT
    UserProfile.objects.get_or_create(
        user=instance,
        defaults={
            "role": role,
            "full_name": instance.get_full_name(),
        },
    )
