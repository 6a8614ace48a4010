from django.core.management.base import BaseCommand
from django.contrib.auth.models import Group, Permission

from backoffice.core.permissions import ADMIN, MANAGER, STAFF

INVENTORY_APPS = ['inventory', 'catalog', 'locations']


class Command(BaseCommand):
    help = 'Create Django user groups for RBAC: Admin, Manager, Staff'

    def handle(self, *args, **options):
        groups_config = [
            {
                'name': ADMIN,
                'description': 'Full system access including backend and legacy sync',
            },
            {
                'name': MANAGER,
                'description': 'Can adjust and transfer stock, run legacy sync, edit stock levels',
            },
            {
                'name': STAFF,
                'description': 'Read-only access to inventory, sites and catalog',
            },
        ]

        created_count = 0
        updated_count = 0

        for group_config in groups_config:
            group, created = Group.objects.get_or_create(name=group_config['name'])

            if created:
                self.stdout.write(self.style.SUCCESS(f'✓ Created group: {group_config["name"]}'))
                created_count += 1
            else:
                self.stdout.write(f'  Group already exists: {group_config["name"]}')
                updated_count += 1

            if group_config['name'] == ADMIN:
                group.permissions.set(Permission.objects.all())
                self.stdout.write('  Added all permissions to Admin group')
            elif group_config['name'] == MANAGER:
                group.permissions.set(
                    Permission.objects.filter(content_type__app_label__in=INVENTORY_APPS)
                )
                self.stdout.write('  Added inventory, catalog and site permissions to Manager group')
            else:
                group.permissions.set(
                    Permission.objects.filter(
                        content_type__app_label__in=INVENTORY_APPS,
                        codename__startswith='view_',
                    )
                )
                self.stdout.write('  Added view permissions to Staff group')

        self.stdout.write(self.style.SUCCESS(
            f'\nCompleted: {created_count} groups created, {updated_count} groups already existed'
        ))
