"""
Management command to populate the database with demo catalog and content data.
"""
from datetime import timedelta

from django.core.management.base import BaseCommand
from django.db import transaction
from django.utils import timezone

from core.models import Content, Program, Scholarship, School, User

SCHOOLS = [
    ("University of Toronto", "Canada", "Toronto", 21),
    ("Technical University of Munich", "Germany", "Munich", 37),
    ("University of Cape Town", "South Africa", "Cape Town", 171),
    ("National University of Singapore", "Singapore", "Singapore", 8),
]
PROGRAMS = [
    ("Computer Science", "Master", "Computer Science"),
    ("Public Health", "Master", "Health Sciences"),
    ("Data Science", "PhD", "Computer Science"),
]
SCHOLARSHIPS = [
    ("Global Excellence Award", "Global Excellence Foundation", 15000, "USD"),
    ("STEM Women Leaders Grant", "Women in STEM Trust", 8000, "EUR"),
    ("Africa Future Fellows", "Future Fellows Network", 20000, "USD"),
]


class Command(BaseCommand):
    help = 'Populate database with demo catalog and content data'

    def handle(self, *args, **options):
        with transaction.atomic():
            schools = self.create_schools()
            programs = self.create_programs(schools)
            scholarships = self.create_scholarships()
            articles = self.create_content()
        self.stdout.write(self.style.SUCCESS(
            f'Seeded {len(schools)} schools, {len(programs)} programs, '
            f'{len(scholarships)} scholarships, {len(articles)} content items'
        ))

    def create_schools(self):
        schools = []
        for name, country, city, ranking in SCHOOLS:
            school, _ = School.objects.get_or_create(
                name=name, defaults={'country': country, 'city': city, 'global_ranking': ranking},
            )
            schools.append(school)
        return schools

    def create_programs(self, schools):
        programs = []
        for school in schools:
            for name, degree, field in PROGRAMS:
                program, _ = Program.objects.get_or_create(
                    school=school, name=name,
                    defaults={
                        'degree_type': degree, 'field_of_study': field, 'mode': 'Full-time',
                        'duration': '2 years', 'languages': ['English'],
                        'tuition_fees': {'local': 12000, 'international': 28000, 'currency': 'USD'},
                    },
                )
                programs.append(program)
        return programs

    def create_scholarships(self):
        deadline = (timezone.now() + timedelta(days=120)).date().isoformat()
        scholarships = []
        for title, provider, value, currency in SCHOLARSHIPS:
            scholarship, _ = Scholarship.objects.get_or_create(
                title=title,
                defaults={
                    'provider': provider, 'value': value, 'currency': currency, 'frequency': 'Annual',
                    'scholarship_details': f'{title} offered by {provider}.',
                    'application_link': 'https://example.org/apply',
                    'coverage': ['Tuition', 'Living expenses'], 'deadline': deadline,
                    'eligibility': {'nationalities': [], 'minGPA': 3.0},
                },
            )
            scholarships.append(scholarship)
        return scholarships

    def create_content(self):
        author = User.objects.filter(role__in=['admin', 'super_admin']).first()
        items = []
        for title, kind in (('How to ask for a recommendation letter', 'blog'),
                            ('Summer research internship 2027', 'opportunity'),
                            ('Study abroad info session', 'event')):
            item = Content.objects.filter(slug=Content.slug_from_title(title)).first()
            if item is None:
                item = Content.objects.create(
                    title=title,
                    content=f'{title}. Details and tips for applicants.',
                    excerpt=title,
                    type=kind,
                    status='published',
                    author=author.display_name() if author else 'Editorial team',
                    created_by=author,
                    event_date=timezone.now() + timedelta(days=30) if kind == 'event' else None,
                    opportunity_type='internship' if kind == 'opportunity' else '',
                )
            items.append(item)
        return items
