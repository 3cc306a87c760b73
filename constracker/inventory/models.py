from django.db import models
from django.db.models import Q
from constracker.core.models import User, AppendOnlyModel
from constracker.projects.models import Project
from constracker.catalog.models import Item


class InventoryMovement(AppendOnlyModel):
    """
    One ledger entry. A null project is the central inventory.

    Balances are never stored; they are the sum of ``in`` minus the sum of
    ``out`` movements for an (item, project) pair.
    """
    DIRECTION_IN = 'in'
    DIRECTION_OUT = 'out'
    DIRECTION_CHOICES = [
        (DIRECTION_IN, 'In'),
        (DIRECTION_OUT, 'Out'),
    ]

    SOURCE_SUPPLIER = 'supplier'
    SOURCE_MAIN_INVENTORY = 'main_inventory'
    SOURCE_ADJUSTMENT = 'adjustment'
    SOURCE_CHOICES = [
        (SOURCE_SUPPLIER, 'Supplier'),
        (SOURCE_MAIN_INVENTORY, 'Main Inventory'),
        (SOURCE_ADJUSTMENT, 'Adjustment'),
    ]

    item = models.ForeignKey(Item, on_delete=models.PROTECT, related_name='movements')
    project = models.ForeignKey(Project, on_delete=models.PROTECT, null=True, blank=True, related_name='inventory_movements')
    direction = models.CharField(max_length=3, choices=DIRECTION_CHOICES)
    quantity = models.PositiveIntegerField()
    source = models.CharField(max_length=20, choices=SOURCE_CHOICES)
    material_request = models.ForeignKey('procurement.MaterialRequest', on_delete=models.PROTECT, null=True, blank=True, related_name='inventory_movements')
    created_by = models.ForeignKey(User, on_delete=models.PROTECT, null=True, blank=True, related_name='inventory_movements')
    remarks = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    def __str__(self):
        where = self.project or 'central'
        return f"{self.direction} {self.quantity} {self.item} ({where})"

    @property
    def signed_quantity(self):
        return self.quantity if self.direction == self.DIRECTION_IN else -self.quantity

    class Meta:
        db_table = 'inventory_movements'
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['item', 'project'], name='inv_mov_item_project_idx'),
        ]
        constraints = [
            models.CheckConstraint(condition=Q(quantity__gt=0), name='inventory_movement_quantity_positive'),
        ]
