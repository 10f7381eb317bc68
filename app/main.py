"""
Streamlit Frontend for Tallyboard

The host shell around the counter and income controllers.

DESIGN PRINCIPLES:
1. Every button maps to exactly one controller call
2. Destructive actions ask for explicit confirmation
3. Validation messages are shown as returned, and nothing changes
4. Image uploads are compressed and retried before falling back to an
   inline (session-only) image

The UI never touches the store or the image directory directly; it only
calls the components built by create_app_components().
"""

from typing import Optional
from urllib.parse import urlparse
from urllib.request import url2pathname

import streamlit as st

from tallyboard.config import validate_all_settings
from tallyboard.domain import (
    ConfirmationRequiredError,
    NoCategoryError,
    TallyboardError,
    ThresholdReached,
    ValidationFailedError,
)
from tallyboard.models import Counter, ImageRef, InlineImage, StoredImage, Theme
from tallyboard.orchestrator import AppComponents, create_app_components
from tallyboard.services.image import (
    HttpImageStore,
    ImageStoreError,
    InProcessImageStore,
    human_file_size,
)


st.set_page_config(
    page_title="Tallyboard",
    page_icon="🔢",
    layout="wide",
    initial_sidebar_state="expanded",
)

THEME_COLORS = {
    Theme.DARK: ("#1f1f1f", "#f5f5f5"),
    Theme.LIGHT: ("#ffffff", "#1f1f1f"),
    Theme.BLUE: ("#e6f0ff", "#0b3d91"),
    Theme.GREEN: ("#e9f7ef", "#145a32"),
    Theme.PURPLE: ("#f3e9ff", "#4a235a"),
}


def _remember_threshold(event: ThresholdReached) -> None:
    st.session_state.setdefault("threshold_events", []).append(event)


@st.cache_resource
def get_components() -> AppComponents:
    """Get or create application components (cached)."""
    return create_app_components(on_threshold=_remember_threshold)


def apply_theme(theme: Theme) -> None:
    background, text = THEME_COLORS[theme]
    st.markdown(f"""
    <style>
        .stApp {{ background-color: {background}; color: {text}; }}
        .stButton>button {{ width: 100%; }}
    </style>
    """, unsafe_allow_html=True)


def image_source(components: AppComponents, image: Optional[ImageRef]):
    """Something st.image can render for an ImageRef, or None."""
    if image is None:
        return None
    if isinstance(image, InlineImage):
        return image.to_bytes()
    reference = image.reference
    if reference.startswith("file://"):
        return url2pathname(urlparse(reference).path)
    store = components.image_store
    if isinstance(store, HttpImageStore) and reference.startswith("/"):
        return f"{store.base_url}{reference}"
    if isinstance(store, InProcessImageStore):
        path = store.local_store.resolve_reference(reference)
        return str(path) if path else None
    return reference


def upload_image(components: AppComponents, uploaded_file) -> Optional[ImageRef]:
    """Check limits, then upload through the compression ladder."""
    if uploaded_file is None:
        return None
    data = uploaded_file.getvalue()
    try:
        components.compressor.check_upload_limits(data)
    except ImageStoreError as e:
        st.error(str(e))
        return None
    image = components.compressor.upload_with_fallback(
        components.image_store, data, uploaded_file.name,
    )
    if isinstance(image, InlineImage):
        st.warning("Image could not be saved; it is shown for this session only.")
    return image


def show_in_folder_button(components: AppComponents, image: Optional[ImageRef], key: str) -> None:
    """Reveal a stored image in the OS file manager (in-process transport only)."""
    store = components.image_store
    if not isinstance(store, InProcessImageStore) or not isinstance(image, StoredImage):
        return
    if st.button("📂 Show in folder", key=key):
        result = store.reveal(image.reference)
        if not result.ok:
            st.error(f"Could not show the file: {result.error}")


def show_validation_error(error: ValidationFailedError) -> None:
    for issue in error.result.issues:
        hint = f" ({issue.suggested_fix})" if issue.suggested_fix else ""
        st.error(f"{issue.message}{hint}")


def main():
    """Main application entry point."""
    components = get_components()
    apply_theme(components.themes.load())

    st.sidebar.title("🔢 Tallyboard")
    st.sidebar.markdown("---")
    page = st.sidebar.radio(
        "Navigate to:",
        ["🔢 Counters", "🗂️ Categories", "💰 Income", "⚙️ Settings"],
        index=0,
    )

    for event in st.session_state.pop("threshold_events", []):
        st.toast(f"Counter \"{event.name}\" reached its threshold {event.max_value}.")

    if page == "🔢 Counters":
        render_counters_page(components)
    elif page == "🗂️ Categories":
        render_categories_page(components)
    elif page == "💰 Income":
        render_income_page(components)
    elif page == "⚙️ Settings":
        render_settings_page(components)


def render_counter_card(components: AppComponents, counter: Counter) -> None:
    controller = components.counters
    with st.container(border=True):
        source = image_source(components, counter.image)
        if source is not None:
            st.image(source)
            show_in_folder_button(components, counter.image, f"show_{counter.id}")

        st.markdown(f"**{counter.name}**")
        st.metric("Value", counter.value)
        if counter.max_value is not None:
            warning = "⚠️ " if controller.threshold_warning(counter) else ""
            st.caption(f"{warning}Threshold: {counter.max_value}")

        minus, plus, reset = st.columns(3)
        if minus.button("−", key=f"dec_{counter.id}"):
            controller.decrease(counter.id)
            st.rerun()
        if plus.button("+", key=f"inc_{counter.id}"):
            controller.increase(counter.id)
            st.rerun()
        if reset.button("0", key=f"reset_{counter.id}"):
            controller.reset(counter.id)
            st.rerun()

        with st.expander("Edit"):
            name = st.text_input("Name", value=counter.name, key=f"name_{counter.id}")
            max_value = st.number_input(
                "Threshold (0 = none)", min_value=0, step=1,
                value=counter.max_value or 0, key=f"max_{counter.id}",
            )
            new_file = st.file_uploader(
                "Replace image", type=["jpg", "jpeg", "png", "webp"], key=f"img_{counter.id}",
            )
            if st.button("Save", key=f"save_{counter.id}"):
                try:
                    controller.update_counter(
                        counter.id, name, int(max_value) or None, upload_image(components, new_file),
                    )
                    st.rerun()
                except ValidationFailedError as e:
                    show_validation_error(e)
            confirm = st.checkbox("Yes, delete this counter", key=f"confirm_del_{counter.id}")
            if st.button("🗑️ Delete counter", key=f"del_{counter.id}"):
                try:
                    controller.delete_counter(counter.id, confirm=confirm)
                    st.rerun()
                except ConfirmationRequiredError:
                    st.warning("Tick the confirmation box first.")


def render_counters_page(components: AppComponents):
    """Render the counters of one category."""
    st.title("🔢 Counters")
    controller = components.counters
    categories = controller.categories_or_default()

    category = st.selectbox(
        "Category", categories, format_func=lambda c: c.name, key="current_category",
    )
    st.metric("Total", controller.total(category.id))

    with st.expander("➕ New counter"):
        name = st.text_input("Name", key="new_counter_name")
        max_value = st.number_input("Threshold (0 = none)", min_value=0, step=1, key="new_counter_max")
        uploaded = st.file_uploader("Image", type=["jpg", "jpeg", "png", "webp"], key="new_counter_img")
        if st.button("Create", type="primary"):
            try:
                controller.create_counter(
                    category.id, name, int(max_value) or None, upload_image(components, uploaded),
                )
                st.rerun()
            except NoCategoryError:
                st.warning("Create a category first.")
            except ValidationFailedError as e:
                show_validation_error(e)
            except TallyboardError as e:
                st.error(str(e))

    with st.expander("🎯 Batch threshold / reset"):
        batch = st.number_input("Threshold for all (0 = clear)", min_value=0, step=1, key="batch_max")
        if st.button("Apply threshold"):
            try:
                controller.apply_batch_threshold(category.id, int(batch) or None)
                st.rerun()
            except TallyboardError as e:
                st.error(str(e))
        confirm = st.checkbox("Yes, reset every counter in this category", key="confirm_reset_all")
        if st.button("Reset all to 0"):
            try:
                controller.reset_all(category.id, confirm=confirm)
                st.rerun()
            except ConfirmationRequiredError:
                st.warning("Tick the confirmation box first.")
            except TallyboardError as e:
                st.error(str(e))

    counters = controller.counters_in(category.id)
    if not counters:
        st.info("No counters in this category yet.")
        return

    columns = st.columns(4)
    for index, counter in enumerate(counters):
        with columns[index % 4]:
            render_counter_card(components, counter)

    if not controller.last_save_ok:
        st.warning("The last change could not be saved; it is kept for this session only.")


def render_categories_page(components: AppComponents):
    """Create, rename and delete categories."""
    st.title("🗂️ Categories")
    controller = components.counters

    new_name = st.text_input("New category name")
    if st.button("Add category", type="primary"):
        try:
            controller.create_category(new_name)
            st.rerun()
        except ValidationFailedError as e:
            show_validation_error(e)

    st.markdown("---")
    for category in controller.categories:
        cols = st.columns([3, 1, 2, 1])
        renamed = cols[0].text_input("Name", value=category.name, key=f"cat_{category.id}")
        cols[1].metric("Counters", len(controller.counters_in(category.id)))
        if cols[0].button("Rename", key=f"rename_{category.id}"):
            try:
                controller.rename_category(category.id, renamed)
                st.rerun()
            except ValidationFailedError as e:
                show_validation_error(e)
        confirm = cols[2].checkbox("Delete with all counters", key=f"confirm_cat_{category.id}")
        if cols[3].button("🗑️", key=f"del_cat_{category.id}"):
            try:
                orphans = controller.delete_category(category.id, confirm=confirm)
                if orphans:
                    st.warning(f"{len(orphans)} image file(s) could not be deleted.")
                st.rerun()
            except ConfirmationRequiredError:
                st.warning("Tick the confirmation box first.")


def render_income_page(components: AppComponents):
    """Render the income ledger."""
    st.title("💰 Income")
    ledger = components.income

    gold = st.number_input(
        "Daily gold price (per 万)", min_value=0.0, value=float(ledger.daily_gold_price), step=1.0,
    )
    if gold != ledger.daily_gold_price:
        ledger.set_daily_gold_price(gold)

    totals = ledger.totals()
    t1, t2, t3 = st.columns(3)
    t1.metric("Total (万)", f"{totals.total_wan:,.2f}")
    t2.metric("Total amount", f"{totals.total_amount:,.0f}")
    t3.metric("Total by gold price", f"{totals.total_by_gold:,.2f}")

    top = st.columns([2, 1, 1])
    query = top[0].text_input("Search by name")
    if top[1].button("➕ New item"):
        ledger.add_item()
        st.rerun()
    confirm_reset = top[2].checkbox("Confirm reset", key="confirm_qty_reset")
    if top[2].button("Reset all quantities"):
        try:
            ledger.reset_all_qty(confirm=confirm_reset)
            st.rerun()
        except ConfirmationRequiredError:
            st.warning("Tick the confirmation box first.")

    for item in ledger.search(query):
        with st.container(border=True):
            cols = st.columns([1, 3, 2, 2, 1, 1, 1])
            source = image_source(components, item.img)
            if source is not None:
                cols[0].image(source, width=64)
            name = cols[1].text_input("Name", value=item.name, key=f"item_name_{item.id}")
            price = cols[2].number_input(
                "Price (万)", min_value=0.0, value=float(item.price), key=f"item_price_{item.id}",
            )
            cols[3].metric("Amount", f"{item.amount():,.0f}")
            cols[4].metric("Qty", item.qty)
            if cols[5].button("+", key=f"item_inc_{item.id}"):
                ledger.increment_qty(item.id)
                st.rerun()
            if cols[6].button("−", key=f"item_dec_{item.id}"):
                ledger.decrement_qty(item.id)
                st.rerun()

            uploaded = st.file_uploader(
                "Image", type=["jpg", "jpeg", "png", "webp"], key=f"item_img_{item.id}",
            )
            show_in_folder_button(components, item.img, f"item_show_{item.id}")
            save, confirm_col, delete = st.columns(3)
            if save.button("Save", key=f"item_save_{item.id}"):
                patch = {"name": name, "price": price}
                image = upload_image(components, uploaded)
                if image is not None:
                    patch["img"] = image
                try:
                    ledger.update_item(item.id, **patch)
                    st.rerun()
                except ValidationFailedError as e:
                    show_validation_error(e)
            confirm = confirm_col.checkbox("Confirm delete", key=f"item_confirm_del_{item.id}")
            if delete.button("🗑️ Delete", key=f"item_del_{item.id}"):
                try:
                    ledger.remove_item(item.id, confirm=confirm)
                    st.rerun()
                except ConfirmationRequiredError:
                    st.warning("Tick the confirmation box first.")


def render_settings_page(components: AppComponents):
    """Render the settings page."""
    st.title("⚙️ Settings")

    themes = list(Theme)
    current = components.themes.load()
    theme = st.selectbox(
        "Theme", themes, index=themes.index(current), format_func=lambda t: t.value,
    )
    if theme != current:
        components.themes.save(theme)
        st.rerun()

    st.markdown("### Configuration Status")
    for name, ok in validate_all_settings().items():
        if name.endswith("_error"):
            continue
        if ok:
            st.success(f"✅ {name}")
        else:
            st.error(f"❌ {name}")

    st.markdown("### Image Store")
    store = components.image_store
    if isinstance(store, InProcessImageStore):
        st.markdown(f"In-process, saving to `{store.local_store.uploads_dir}`")
    elif isinstance(store, HttpImageStore):
        st.markdown(f"Upload server at `{store.base_url}`")

    st.markdown("### Recent Activity")
    events = components.audit_logger.events[-20:]
    if not events:
        st.caption("No activity recorded in this session.")
    for event in reversed(events):
        st.caption(f"{event.timestamp:%H:%M:%S} · {event.description}")

    if components.compressor.qualities:
        st.caption(
            "Uploads are compressed with qualities "
            + ", ".join(str(q) for q in components.compressor.qualities)
        )
    st.caption(f"Maximum upload size: {human_file_size(components.compressor.max_upload_bytes or 0)}")


if __name__ == "__main__":
    main()
