"""Order status definitions shared by the admin, client and gruzchik views"""

ORDER_STATUSES = [
    {'value': 'Новый', 'label': 'Новый', 'description': 'New order'},
    {'value': 'Наличие', 'label': 'Наличие', 'description': 'Checking availability'},
    {'value': 'Проверено', 'label': 'Проверено', 'description': 'Verified/Checked'},
    {'value': 'Согласование', 'label': 'Согласование', 'description': 'Approval/Coordination'},
    {'value': 'Согласован', 'label': 'Согласован', 'description': 'Approved/Coordinated'},
    {'value': 'Купить', 'label': 'Купить', 'description': 'To Buy'},
    {'value': 'Куплен', 'label': 'Куплен', 'description': 'Bought/Purchased'},
    {'value': 'Отправить', 'label': 'Отправить', 'description': 'To Send/Dispatch'},
    {'value': 'Готов к отправке', 'label': 'Готов к отправке', 'description': 'Ready for Dispatch'},
    {'value': 'Отправлен', 'label': 'Отправлен', 'description': 'Sent/Dispatched'},
    {'value': 'Выполнен', 'label': 'Выполнен', 'description': 'Completed/Fulfilled'},
    {'value': 'Отменен', 'label': 'Отменен', 'description': 'Canceled'},
]

DEFAULT_STATUS = ORDER_STATUSES[0]['value']

STATUS_CHOICES = [(s['value'], s['label']) for s in ORDER_STATUSES]

STATUS_VALUES = {s['value'] for s in ORDER_STATUSES}


def get_status_config(value):
    for config in ORDER_STATUSES:
        if config['value'] == value:
            return config
    return {'value': value, 'label': value, 'description': 'Unknown status'}


def get_status_label(value):
    return get_status_config(value)['label']
