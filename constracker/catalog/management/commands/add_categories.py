"""
Management command to add the standard construction categories and units
"""
from django.core.management.base import BaseCommand
from django.db import transaction
from constracker.catalog.models import Category, Unit

UNITS = [
    ('Piece', 'pc'),
    ('Bag', 'bag'),
    ('Kilogram', 'kg'),
    ('Meter', 'm'),
    ('Cubic Meter', 'cu.m'),
    ('Sheet', 'sht'),
    ('Length', 'lgth'),
    ('Gallon', 'gal'),
    ('Liter', 'L'),
    ('Roll', 'roll'),
    ('Box', 'box'),
    ('Set', 'set'),
    ('Unit', 'unit'),
]

# Category name -> allowed unit names
CATEGORIES = {
    'Cement & Concrete': ['Bag', 'Cubic Meter'],
    'Aggregates': ['Cubic Meter', 'Bag'],
    'Steel & Rebar': ['Length', 'Kilogram', 'Piece'],
    'Lumber & Plywood': ['Piece', 'Sheet', 'Length'],
    'Roofing': ['Sheet', 'Piece', 'Length'],
    'Paint & Finishes': ['Gallon', 'Liter'],
    'Electrical': ['Piece', 'Roll', 'Meter', 'Box'],
    'Plumbing': ['Piece', 'Length', 'Set'],
    'Hardware & Fasteners': ['Kilogram', 'Box', 'Piece'],
    'Tools & Equipment': ['Unit', 'Set', 'Piece'],
}


class Command(BaseCommand):
    help = "Adds predefined construction units and categories to the database"

    def handle(self, *args, **options):
        created_units = 0
        created_categories = 0

        with transaction.atomic():
            units = {}
            for name, abbreviation in UNITS:
                unit, created = Unit.objects.get_or_create(name=name, defaults={'abbreviation': abbreviation})
                units[name] = unit
                created_units += created

            for name, unit_names in CATEGORIES.items():
                category, created = Category.objects.get_or_create(name=name)
                if created:
                    created_categories += 1
                    self.stdout.write(self.style.SUCCESS(f"  Created: {name}"))
                else:
                    self.stdout.write(self.style.WARNING(f"  Skipped (already exists): {name}"))
                category.units.add(*(units[unit_name] for unit_name in unit_names))

        self.stdout.write(f"Units Created: {created_units}")
        self.stdout.write(f"Categories Created: {created_categories}")
        self.stdout.write(f"Total Categories in Database: {Category.objects.count()}")
