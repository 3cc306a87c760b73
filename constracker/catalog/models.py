from django.db import models
from decimal import Decimal
from constracker.core.models import User


class Unit(models.Model):
    """Units of measure"""
    name = models.CharField(max_length=100, unique=True)
    abbreviation = models.CharField(max_length=20, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.abbreviation or self.name

    class Meta:
        db_table = 'units'
        ordering = ['name']


class Category(models.Model):
    """Material categories; each lists the units its items may use"""
    name = models.CharField(max_length=200, unique=True)
    units = models.ManyToManyField(Unit, db_table='category_units', related_name='categories', blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    class Meta:
        db_table = 'categories'
        verbose_name_plural = 'categories'
        ordering = ['name']


class Supplier(models.Model):
    """Suppliers"""
    name = models.CharField(max_length=200, unique=True)
    address = models.TextField(blank=True)
    contact_number = models.CharField(max_length=30, blank=True)
    email = models.EmailField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    class Meta:
        db_table = 'suppliers'
        ordering = ['name']


class Item(models.Model):
    """Catalog entry: a material or an asset type"""
    TYPE_MATERIAL = 'material'
    TYPE_ASSET = 'asset'
    ITEM_TYPE_CHOICES = [
        (TYPE_MATERIAL, 'Material'),
        (TYPE_ASSET, 'Asset'),
    ]

    STATUS_PENDING = 'pending'
    STATUS_APPROVED = 'approved'
    APPROVAL_STATUS_CHOICES = [
        (STATUS_PENDING, 'Pending'),
        (STATUS_APPROVED, 'Approved'),
    ]

    name = models.CharField(max_length=200, db_index=True)
    description = models.TextField(blank=True)
    price = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    size = models.CharField(max_length=100, blank=True)
    category = models.ForeignKey(Category, on_delete=models.SET_NULL, null=True, blank=True, related_name='items')
    supplier = models.ForeignKey(Supplier, on_delete=models.SET_NULL, null=True, blank=True, related_name='items')
    unit = models.ForeignKey(Unit, on_delete=models.SET_NULL, null=True, blank=True, related_name='items')
    item_type = models.CharField(max_length=20, choices=ITEM_TYPE_CHOICES, default=TYPE_MATERIAL)
    track_condition = models.BooleanField(default=False)
    image_url = models.CharField(max_length=255, blank=True, help_text="Stored image filename")
    approval_status = models.CharField(max_length=20, choices=APPROVAL_STATUS_CHOICES, default=STATUS_PENDING, db_index=True)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='created_items')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    @property
    def is_approved(self):
        return self.approval_status == self.STATUS_APPROVED

    class Meta:
        db_table = 'items'
        ordering = ['name']
