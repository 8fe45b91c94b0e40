"""Public form submissions and site settings"""
from studio import db
from .base import BaseModel


class Contact(BaseModel):
    """Contact form submission"""
    __tablename__ = 'contacts'

    first_name = db.Column(db.String(100), nullable=False)
    last_name = db.Column(db.String(100), nullable=False)
    email = db.Column(db.String(255), nullable=False)
    subject = db.Column(db.String(255), nullable=False)
    message = db.Column(db.Text, nullable=False)

    def __repr__(self):
        return f'<Contact {self.email}>'


class Inquiry(BaseModel):
    """Service inquiry from the public site"""
    __tablename__ = 'inquiries'

    STATUSES = ('new', 'contacted', 'converted', 'closed')

    name = db.Column(db.String(200), nullable=False)
    email = db.Column(db.String(255), nullable=False)
    phone = db.Column(db.String(50))
    service = db.Column(db.String(100), nullable=False)
    message = db.Column(db.Text, nullable=False)
    status = db.Column(db.String(20), nullable=False, default='new')

    def __repr__(self):
        return f'<Inquiry {self.email} {self.status}>'


class SiteSetting(BaseModel):
    """Key/value site configuration editable from the admin panel"""
    __tablename__ = 'site_settings'

    key = db.Column(db.String(100), nullable=False, unique=True)
    value = db.Column(db.Text)
    category = db.Column(db.String(50), nullable=False, default='general')
    description = db.Column(db.Text)

    def __repr__(self):
        return f'<SiteSetting {self.key}>'

    @classmethod
    def upsert(cls, key, value, category=None, description=None):
        """Insert or update a setting (added to the session, not committed)"""
        setting = cls.query.filter_by(key=key).first()
        if setting is None:
            setting = cls(key=key, category=category or 'general')
            db.session.add(setting)
        setting.value = value
        if category:
            setting.category = category
        if description is not None:
            setting.description = description
        return setting


DEFAULT_SETTINGS = [
    ('seo_title', 'Freelance Studio - Senior Fullstack Developer', 'seo', 'Main site title for SEO'),
    ('seo_description', 'Fullstack web development: web apps, e-commerce, SaaS platforms and APIs.',
     'seo', 'Meta description for SEO'),
    ('seo_keywords', 'fullstack developer, web development, React, Node.js, Python, APIs', 'seo', 'Keywords for SEO'),
    ('og_image', '/og-image.jpg', 'seo', 'Open Graph image URL'),
    ('site_name', 'Freelance Studio', 'general', 'Site name'),
    ('contact_email', 'hello@example.com', 'contact', 'Main contact email'),
    ('linkedin_url', '', 'social', 'LinkedIn profile URL'),
    ('github_url', '', 'social', 'GitHub profile URL'),
    ('twitter_url', '', 'social', 'Twitter profile URL'),
]
