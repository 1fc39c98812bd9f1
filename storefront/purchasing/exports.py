"""
Purchase export for the joint-purchase site.

The site imports a sheet whose first row is a title, the second row the
column header, then one row per purchase item. XLSX is built with openpyxl;
CSV is `;`-separated UTF-8 with a BOM so spreadsheet apps pick the encoding.
"""
import csv
import io
import logging
from decimal import Decimal
from urllib.parse import quote

from django.utils import timezone
from openpyxl import Workbook
from openpyxl.styles import Font

logger = logging.getLogger(__name__)

TITLE_ROW = 'Файл выгрузки на сайт покупок'

HEADER = [
    'Наименование',
    'Артикул',
    'Цена, руб.',
    'Старая цена, руб',
    'Описание',
    'Размеры',
    'Изображение',
]

OLD_PRICE_FACTOR = Decimal('1.8')


def old_price_for(price):
    return (Decimal(str(price)) * OLD_PRICE_FACTOR).quantize(Decimal('0.01'))


def format_number(value):
    """Decimal without trailing zeros: 1500.00 -> '1500', 99.50 -> '99.5'"""
    if value is None:
        return ''
    return format(Decimal(str(value)).normalize(), 'f')


def format_sizes(value):
    """
    Comma-separated size list.

    Accepts [{"size": "36", ...}], plain ["36", 37] lists and {"36": true}
    availability maps. Anything else yields an empty string.
    """
    if value is None:
        return ''
    if isinstance(value, list):
        if not value:
            return ''
        if all(isinstance(v, dict) and 'size' in v for v in value):
            return ','.join(str(v['size']) for v in value)
        if all(isinstance(v, (str, int, float)) and not isinstance(v, bool) for v in value):
            return ','.join(str(v) for v in value)
        return ''
    if isinstance(value, dict):
        return ','.join(str(k) for k, v in value.items() if v is True or v == 1)
    if isinstance(value, (str, int, float)):
        return str(value)
    return ''


def format_purchase_description(description=None, material=None, sizes=None, price_pair=None):
    """Item description shown on the purchase site"""
    lines = []
    if description:
        lines.append(description.strip())
    if material:
        lines.append(f'Материал: {material}')
    sizes_text = format_sizes(sizes)
    if sizes_text:
        lines.append(f'Размеры: {sizes_text}')
        if isinstance(sizes, list) and sizes:
            lines.append(f'В коробке: {len(sizes)} пар')
    if price_pair is not None:
        lines.append(f'Цена за пару: {format_number(price_pair)} руб.')
    return '\n'.join(lines)


def _color_key(image):
    return (image.color or '').lower()


def select_images(images, color=None):
    """
    Images exported for one item.

    With a color, that color group. Without one, the primary image's color
    group, or the images that have no color, or finally the primary alone.
    `images` must be ordered primary first.
    """
    images = list(images)
    wanted = (color or '').lower()
    if wanted:
        return [img for img in images if _color_key(img) == wanted]

    primary = next((img for img in images if img.is_primary), images[0] if images else None)
    selected = images
    primary_color = _color_key(primary) if primary else ''
    if primary_color:
        selected = [img for img in images if _color_key(img) == primary_color]
    else:
        no_color = [img for img in images if not img.color]
        if no_color:
            selected = no_color
    if not selected and primary is not None:
        selected = [primary]
    return selected


def export_rows(purchase):
    """Data rows for `purchase`, items in sort order"""
    rows = []
    items = purchase.items.select_related('product').prefetch_related('product__images').order_by('sort_index', 'id')
    for item in items:
        product = item.product
        images = sorted(product.images.all(), key=lambda img: (not img.is_primary, img.sort))
        urls = ','.join(img.url for img in select_images(images, item.color) if img.url)
        rows.append([
            item.name,
            product.article or '',
            format_number(item.price),
            format_number(item.old_price),
            item.description or '',
            format_sizes(product.sizes) if product.sizes else '',
            urls,
        ])
    return rows


def build_csv(purchase):
    buffer = io.StringIO()
    buffer.write('\ufeff' + TITLE_ROW + '\n')
    writer = csv.writer(buffer, delimiter=';', lineterminator='\n')
    writer.writerow(HEADER)
    writer.writerows(export_rows(purchase))
    return buffer.getvalue()


def build_xlsx(purchase):
    wb = Workbook()
    ws = wb.active
    ws.title = 'Покупки'

    ws.append([TITLE_ROW])
    ws['A1'].font = Font(bold=True, size=14)
    ws.append(HEADER)
    for cell in ws[2]:
        cell.font = Font(bold=True)

    for row in export_rows(purchase):
        ws.append(row)

    for column, width in zip('ABCDEFG', (40, 16, 12, 16, 60, 24, 80)):
        ws.column_dimensions[column].width = width

    output = io.BytesIO()
    wb.save(output)
    logger.info(f"Purchase {purchase.pk} exported to XLSX: {ws.max_row - 2} rows")
    return output.getvalue()


def export_filename(purchase, extension):
    return f"purchase-export-{purchase.name}-{timezone.localdate().isoformat()}.{extension}"


def content_disposition(filename):
    """attachment header with an ASCII fallback and an RFC 5987 UTF-8 filename"""
    ascii_fallback = ''.join(ch if 0x20 <= ord(ch) <= 0x7e and ch != '"' else '_' for ch in filename)
    return f"attachment; filename=\"{ascii_fallback}\"; filename*=UTF-8''{quote(filename, safe='')}"
