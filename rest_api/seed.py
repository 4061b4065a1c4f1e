"""
Seed data for development and demos.
Creates the restaurant config, a small menu with complement groups and two
delivery zones.
"""

from sqlalchemy import select
from sqlalchemy.orm import Session

from rest_api.models import (
    Category,
    ComplementGroup,
    ComplementOption,
    DeliveryZone,
    MenuItem,
    MenuItemComplement,
    RESTAURANT_CONFIG_ID,
    RestaurantConfig,
)
from shared.config.constants import ComplementMode
from shared.config.logging import get_logger

logger = get_logger(__name__)

DEFAULT_PRIMARY_COLOR = "#b91c1c"

# (nome, ordem)
DEMO_CATEGORIES = [
    ("Espetos", 1),
    ("Acompanhamentos", 2),
    ("Bebidas", 3),
]

# (nome, descricao, price_cents, category, destaque, groups)
DEMO_ITEMS = [
    ("Espeto de Picanha", "Picanha no ponto, 180g", 2600, "Espetos", True, ["Ponto da carne", "Adicionais"]),
    ("Espeto de Frango", "Coxa e sobrecoxa temperadas", 1400, "Espetos", False, ["Adicionais"]),
    ("Espeto de Queijo Coalho", "Com melaço de cana", 1200, "Espetos", False, []),
    ("Farofa da Casa", "Porção individual", 800, "Acompanhamentos", False, []),
    ("Vinagrete", "Porção individual", 600, "Acompanhamentos", False, []),
    ("Refrigerante Lata", "350ml", 700, "Bebidas", False, []),
]

# (nome, tipo, obrigatorio, [(option, additional_price_cents)])
DEMO_GROUPS = [
    ("Ponto da carne", ComplementMode.SINGLE, True, [("Mal passado", 0), ("Ao ponto", 0), ("Bem passado", 0)]),
    ("Adicionais", ComplementMode.MULTIPLE, False, [("Bacon", 300), ("Queijo", 250), ("Molho especial", 150)]),
]

# (nome, taxa_entrega_cents, pedido_minimo_cents)
DEMO_ZONES = [
    ("Centro", 500, 2000),
    ("Bairro Alto", 800, 3000),
]


def seed_config(db: Session) -> None:
    if db.get(RestaurantConfig, RESTAURANT_CONFIG_ID) is not None:
        return
    db.add(
        RestaurantConfig(
            id=RESTAURANT_CONFIG_ID,
            nome_restaurante="Espetaria Demo",
            endereco="Rua das Brasas, 100",
            cidade="São Paulo",
            estado="SP",
            whatsapp_oficial="11999990000",
            status_funcionamento="aberto",
            modo_atendimento="ambos",
            tempo_entrega="40-60 min",
            cor_primaria=DEFAULT_PRIMARY_COLOR,
            valor_pedido_minimo_cents=1500,
            valor_frete_gratis_cents=10000,
            taxa_entrega_cents=500,
        )
    )


def seed_demo_menu(db: Session) -> bool:
    """
    Insert the demo menu.

    Idempotent: returns False without writing when any category exists.
    """
    if db.scalar(select(Category.id).limit(1)) is not None:
        logger.info("Menu already seeded, skipping")
        return False

    seed_config(db)

    categories = {nome: Category(nome=nome, ordem=ordem) for nome, ordem in DEMO_CATEGORIES}
    db.add_all(categories.values())

    groups: dict[str, ComplementGroup] = {}
    for ordem, (nome, tipo, obrigatorio, options) in enumerate(DEMO_GROUPS):
        group = ComplementGroup(nome=nome, tipo=tipo, obrigatorio=obrigatorio, ordem=ordem)
        group.options = [
            ComplementOption(nome=option, additional_price_cents=price, ordem=index)
            for index, (option, price) in enumerate(options)
        ]
        groups[nome] = group
    db.add_all(groups.values())

    for ordem, (nome, descricao, price_cents, category, destaque, group_names) in enumerate(DEMO_ITEMS):
        item = MenuItem(
            nome=nome,
            descricao=descricao,
            price_cents=price_cents,
            category=categories[category],
            destaque=destaque,
            ordem=ordem,
        )
        item.complement_links = [MenuItemComplement(group=groups[g]) for g in group_names]
        db.add(item)

    for ordem, (nome, fee, minimum) in enumerate(DEMO_ZONES):
        db.add(DeliveryZone(nome=nome, taxa_entrega_cents=fee, pedido_minimo_cents=minimum, ordem=ordem))

    db.commit()
    logger.info(
        "Demo menu seeded",
        categories=len(DEMO_CATEGORIES),
        items=len(DEMO_ITEMS),
        zones=len(DEMO_ZONES),
    )
    return True
