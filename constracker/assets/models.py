from django.db import models
from constracker.projects.models import Project
from constracker.catalog.models import Item


class Asset(models.Model):
    """A tracked piece of equipment, identified by serial number"""
    CONDITION_CHOICES = [
        ('excellent', 'Excellent'),
        ('good', 'Good'),
        ('fair', 'Fair'),
        ('poor', 'Poor'),
        ('damaged', 'Damaged'),
    ]
    USAGE_CHOICES = [
        ('available', 'Available'),
        ('in-use', 'In Use'),
        ('maintenance', 'Maintenance'),
        ('retired', 'Retired'),
    ]

    item = models.ForeignKey(Item, on_delete=models.PROTECT, related_name='assets')
    serial_number = models.CharField(max_length=100, unique=True)
    condition_status = models.CharField(max_length=20, choices=CONDITION_CHOICES, default='good')
    usage_status = models.CharField(max_length=20, choices=USAGE_CHOICES, default='available', db_index=True)
    project = models.ForeignKey(Project, on_delete=models.SET_NULL, null=True, blank=True, related_name='assets')
    last_inspected_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.item} #{self.serial_number}"

    class Meta:
        db_table = 'assets'
        ordering = ['item__name', 'serial_number']
