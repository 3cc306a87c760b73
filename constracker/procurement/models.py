from django.db import models
from django.db.models import F, Q
from constracker.core.models import User, AppendOnlyModel
from constracker.projects.models import Project
from constracker.catalog.models import Item, Supplier


class MaterialRequest(models.Model):
    """A request for materials for one project; ``current_stage`` is its lifecycle position"""
    TYPE_SUPPLIER = 'supplier'
    TYPE_MAIN_INVENTORY = 'main_inventory'
    REQUEST_TYPE_CHOICES = [
        (TYPE_SUPPLIER, 'Supplier'),
        (TYPE_MAIN_INVENTORY, 'Main Inventory'),
    ]

    STAGE_DRAFT = 'DRAFT'
    STAGE_REQUESTED = 'requested'
    STAGE_APPROVED = 'approved'
    STAGE_ORDERED = 'ordered'
    STAGE_VERIFYING = 'verifying'
    STAGE_PARTIALLY_VERIFIED = 'partially_verified'
    STAGE_DISPUTED = 'disputed'
    STAGE_COMPLETED = 'completed'
    STAGE_CANCELLED = 'cancelled'
    STAGE_CHOICES = [
        (STAGE_DRAFT, 'Draft'),
        (STAGE_REQUESTED, 'Requested'),
        (STAGE_APPROVED, 'Approved'),
        (STAGE_ORDERED, 'Ordered'),
        (STAGE_VERIFYING, 'Verifying'),
        (STAGE_PARTIALLY_VERIFIED, 'Partially Verified'),
        (STAGE_DISPUTED, 'Disputed'),
        (STAGE_COMPLETED, 'Completed'),
        (STAGE_CANCELLED, 'Cancelled'),
    ]
    CREATE_STAGES = (STAGE_REQUESTED, STAGE_DRAFT)
    VERIFIABLE_STAGES = (STAGE_VERIFYING, STAGE_PARTIALLY_VERIFIED)
    REVIEWABLE_STAGES = (STAGE_PARTIALLY_VERIFIED, STAGE_DISPUTED, STAGE_COMPLETED)
    TERMINAL_STAGES = (STAGE_CANCELLED, STAGE_COMPLETED, STAGE_DISPUTED)

    STATUS_PENDING = 'pending'
    STATUS_APPROVED = 'approved'
    STATUS_REJECTED = 'rejected'
    STATUS_CHOICES = [
        (STATUS_PENDING, 'Pending'),
        (STATUS_APPROVED, 'Approved'),
        (STATUS_REJECTED, 'Rejected'),
    ]

    PRIORITY_CHOICES = [
        ('low', 'Low'),
        ('normal', 'Normal'),
        ('high', 'High'),
        ('urgent', 'Urgent'),
    ]

    requested_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, related_name='material_requests')
    project = models.ForeignKey(Project, on_delete=models.PROTECT, related_name='material_requests')
    request_type = models.CharField(max_length=20, choices=REQUEST_TYPE_CHOICES)
    supplier = models.ForeignKey(Supplier, on_delete=models.PROTECT, null=True, blank=True, related_name='material_requests')
    current_stage = models.CharField(max_length=30, choices=STAGE_CHOICES, default=STAGE_REQUESTED, db_index=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING, db_index=True)
    priority_level = models.CharField(max_length=10, choices=PRIORITY_CHOICES, default='normal')
    remarks = models.TextField(blank=True)
    approved_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='approved_material_requests')
    approved_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"MR-{self.pk}"

    class Meta:
        db_table = 'material_requests'
        ordering = ['-created_at', '-id']
        constraints = [
            models.CheckConstraint(
                condition=(
                    Q(request_type='supplier', supplier__isnull=False)
                    | Q(request_type='main_inventory', supplier__isnull=True)
                ),
                name='material_request_supplier_matches_type',
            ),
        ]


class MaterialRequestItem(models.Model):
    """One line of a material request with its running verification totals"""
    request = models.ForeignKey(MaterialRequest, on_delete=models.CASCADE, related_name='items')
    item = models.ForeignKey(Item, on_delete=models.PROTECT, related_name='request_lines')
    requested_quantity = models.PositiveIntegerField()
    received_quantity = models.PositiveIntegerField(default=0)
    accepted_quantity = models.PositiveIntegerField(default=0)
    rejected_quantity = models.PositiveIntegerField(default=0)

    def __str__(self):
        return f"{self.item} x {self.requested_quantity}"

    @property
    def pending_quantity(self):
        return self.requested_quantity - self.received_quantity

    def get_line_total(self):
        return self.item.price * self.requested_quantity

    class Meta:
        db_table = 'material_request_items'
        ordering = ['id']
        unique_together = [['request', 'item']]
        constraints = [
            models.CheckConstraint(
                condition=Q(requested_quantity__gt=0),
                name='material_request_item_quantity_positive',
            ),
            models.CheckConstraint(
                condition=Q(received_quantity=F('accepted_quantity') + F('rejected_quantity')),
                name='material_request_item_received_is_sum',
            ),
            models.CheckConstraint(
                condition=Q(received_quantity__lte=F('requested_quantity')),
                name='material_request_item_not_over_received',
            ),
        ]


class MaterialRequestAction(AppendOnlyModel):
    """Lifecycle history of a request"""
    ACTION_CHOICES = [
        ('create', 'Created'),
        ('submit', 'Submitted'),
        ('approve', 'Approved'),
        ('decline', 'Declined'),
        ('order', 'Ordered'),
        ('delivery', 'Delivery Recorded'),
        ('verify', 'Verified'),
        ('review', 'Reviewed'),
    ]

    request = models.ForeignKey(MaterialRequest, on_delete=models.PROTECT, related_name='actions')
    action = models.CharField(max_length=20, choices=ACTION_CHOICES)
    performed_by = models.ForeignKey(User, on_delete=models.PROTECT, null=True, related_name='material_request_actions')
    from_stage = models.CharField(max_length=30, blank=True)
    to_stage = models.CharField(max_length=30, blank=True)
    remarks = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.request} {self.action}"

    class Meta:
        db_table = 'material_request_actions'
        ordering = ['created_at', 'id']


class MaterialDelivery(AppendOnlyModel):
    """A physical delivery against a request"""
    STATUS_PARTIAL = 'partial'
    STATUS_COMPLETE = 'complete'
    STATUS_CHOICES = [
        (STATUS_PARTIAL, 'Partial'),
        (STATUS_COMPLETE, 'Complete'),
    ]

    request = models.ForeignKey(MaterialRequest, on_delete=models.PROTECT, related_name='deliveries')
    delivered_by = models.CharField(max_length=200)
    delivery_date = models.DateField()
    delivery_status = models.CharField(max_length=10, choices=STATUS_CHOICES)
    acknowledged_by = models.ForeignKey(User, on_delete=models.PROTECT, null=True, related_name='acknowledged_deliveries')
    remarks = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.request} delivery {self.delivery_date}"

    class Meta:
        db_table = 'material_deliveries'
        ordering = ['-delivery_date', '-id']
        verbose_name_plural = 'material deliveries'


class MaterialVerification(AppendOnlyModel):
    """One accept/reject decision against one request line"""
    request = models.ForeignKey(MaterialRequest, on_delete=models.PROTECT, related_name='verifications')
    request_item = models.ForeignKey(MaterialRequestItem, on_delete=models.PROTECT, related_name='verifications')
    accepted_quantity = models.PositiveIntegerField(default=0)
    rejected_quantity = models.PositiveIntegerField(default=0)
    verified_by = models.ForeignKey(User, on_delete=models.PROTECT, null=True, related_name='material_verifications')
    remarks = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.request_item}: +{self.accepted_quantity} / -{self.rejected_quantity}"

    class Meta:
        db_table = 'material_verifications'
        ordering = ['created_at', 'id']
