from django.db import models


class Site(models.Model):
    """Physical stock location: store, warehouse or markdown outlet"""
    STORE = 'STORE'
    WAREHOUSE = 'WAREHOUSE'
    MARKDOWN = 'MARKDOWN'
    SITE_TYPE_CHOICES = [
        (STORE, 'Store'),
        (WAREHOUSE, 'Warehouse'),
        (MARKDOWN, 'Markdown Outlet'),
    ]

    code = models.CharField(max_length=50, unique=True)
    name = models.CharField(max_length=200)
    site_type = models.CharField(max_length=20, choices=SITE_TYPE_CHOICES, default=STORE)
    is_markdown = models.BooleanField(default=False)
    # Products synced from this site are flagged as on sale
    enables_on_sale = models.BooleanField(default=False)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.code} - {self.name}"

    class Meta:
        db_table = 'sites'
        ordering = ['code']
