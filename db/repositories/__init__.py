"""Repository layer for the Parley CRM data layer.

Provides CRUD, dedup, and membership methods for the tenant-scoped entities:
- organizations: create_organization, get_organization, get_by_shortcode
- languages: get_or_create_language, get_by_locale
- users: create_user, get_user, list_users, delete_user
- contacts: upsert, get_contact, get_by_phone, list_contacts
- groups: list/count/get/create/update/delete groups, get_or_create_group_by_label,
          load_group_by_label, create_user_group, get_or_create_user_group,
          create_contact_group, update_user_groups
- session_templates: create/get/list/update/delete templates, list_child_templates
"""
