from sqladmin import ModelView

from app.member.models import User
from app.store.models import Store
from app.visit.models import Visit


class UserAdmin(ModelView, model=User):
    name = "Member"
    name_plural = "Members"

    column_list = [
        User.email,
        User.id,
        User.external_identity_id,
        User.payment_customer_id,
        User.birth_date,
        User.created_at,
        User.updated_at,
    ]

    column_searchable_list = [
        User.email,
        User.external_identity_id,
        User.payment_customer_id,
    ]

    column_sortable_list = [User.email, User.created_at, User.updated_at]

    # Identity bindings change only through account linking.
    form_excluded_columns = [User.external_identity_id, User.payment_customer_id]


class StoreAdmin(ModelView, model=Store):
    name = "Store"
    name_plural = "Stores"

    column_list = [Store.id, Store.name, Store.address, Store.created_at]
    column_searchable_list = [Store.id, Store.name]
    column_sortable_list = [Store.id, Store.name, Store.created_at]
    column_details_list = [
        Store.id,
        Store.name,
        Store.address,
        Store.latitude,
        Store.longitude,
        Store.qr_data,
        Store.created_at,
    ]


class VisitAdmin(ModelView, model=Visit):
    name = "Visit"
    name_plural = "Visits"

    can_create = False
    can_edit = False

    column_list = [
        Visit.id,
        Visit.user_id,
        Visit.store_id,
        Visit.check_in_at,
        Visit.status,
        Visit.visit_type,
        Visit.visit_purpose,
    ]
    column_sortable_list = [Visit.check_in_at, Visit.store_id, Visit.status]
    column_default_sort = [(Visit.check_in_at, True)]
