# main_gui.py
import logging
import os
import sys
import webbrowser
from pathlib import Path

from tkinter import (
    Tk, Listbox, Text, Scrollbar, END, SINGLE,
    BOTH, VERTICAL, StringVar, Toplevel, TclError,
)
from tkinter import messagebox, simpledialog
from tkinter import ttk

from api_client import load_config
from app_context import AppContext
from errors import ApiError, SessionExpiredError, TransitionError, ValidationError
from history import (
    STATUS_LABELS,
    TYPE_LABELS,
    answered_count,
    director_stats,
    filter_director_history,
    format_date,
    history_for_professor,
    history_for_student,
    pending_for_professor,
    professor_stats,
    requests_for_student,
    scheduled_for_professor,
    status_label,
    truncate,
    visible_requests,
)
from lifecycle import RescheduleDraft, SlotSelection
from logic import hour_options, parse_date_input
from models import AdvisoryType, DayOfWeek, Role, Status
from report_html import build_history_report, download_advisory_report

logger = logging.getLogger(__name__)

ALL_STATUSES = "Todos"
ALL_PROFESSORS = "Todos los profesores"


# ===================== HELPERS =====================

def make_tree(parent, columns):
    """columns: [(key, encabezado, ancho), ...] -> (frame, treeview)"""
    frame = ttk.Frame(parent)
    tree = ttk.Treeview(
        frame,
        columns=[c[0] for c in columns],
        show="headings",
        selectmode="browse",
    )
    for key, heading, width in columns:
        tree.heading(key, text=heading)
        tree.column(key, width=width, anchor="w")
    tree.grid(row=0, column=0, sticky="nsew")

    scroll_y = Scrollbar(frame, orient=VERTICAL, command=tree.yview)
    scroll_y.grid(row=0, column=1, sticky="ns")
    tree.config(yscrollcommand=scroll_y.set)

    frame.rowconfigure(0, weight=1)
    frame.columnconfigure(0, weight=1)
    return frame, tree


def fill_tree(tree, rows):
    tree.delete(*tree.get_children())
    for iid, values in rows:
        tree.insert("", END, iid=None if iid is None else str(iid), values=values)


def selected_id(tree):
    sel = tree.selection()
    if not sel:
        return None
    try:
        return int(sel[0])
    except ValueError:
        return None


def labeled_entry(parent, text, row, width=30):
    ttk.Label(parent, text=text).grid(row=row, column=0, sticky="w", pady=2)
    var = StringVar()
    ttk.Entry(parent, textvariable=var, width=width).grid(row=row, column=1, sticky="we", pady=2)
    return var


REQUEST_COLUMNS = [
    ("date", "Fecha", 90),
    ("time", "Horario", 110),
    ("student", "Estudiante", 160),
    ("matricula", "Matrícula", 90),
    ("subject", "Materia", 140),
    ("topic", "Tema", 160),
    ("type", "Tipo", 80),
    ("status", "Estado", 100),
    ("observations", "Observaciones", 220),
]


def request_row(r):
    return r.id, (
        format_date(r.date),
        r.time_slot,
        r.student_name,
        r.student_matricula,
        r.subject,
        r.topic,
        TYPE_LABELS[r.type],
        status_label(r.status),
        truncate(r.observations) if r.observations else "-",
    )


class ActionMixin:
    """
    Ejecuta una acción del usuario con el botón deshabilitado mientras
    dura la llamada y muestra el error que corresponda.
    """

    app = None

    def run_action(self, fn, button=None, on_success=None):
        if button is not None:
            button.state(["disabled"])
            self.update_idletasks()
        try:
            result = fn()
        except SessionExpiredError:
            self.app.session_expired()
            return False
        except (ValidationError, TransitionError) as e:
            messagebox.showwarning("Atención", str(e), parent=self)
            return False
        except ApiError as e:
            messagebox.showerror("Error", e.message, parent=self)
            return False
        finally:
            if button is not None and button.winfo_exists():
                button.state(["!disabled"])

        if on_success is not None:
            on_success(result)
        return True


class SlotPicker(ttk.Frame, ActionMixin):
    """Fecha + lista de horarios candidatos de una SlotSelection."""

    def __init__(self, parent, app, selection: SlotSelection, on_change=None):
        super().__init__(parent)
        self.app = app
        self.selection = selection
        self.on_change = on_change

        row = ttk.Frame(self)
        row.pack(fill="x")
        ttk.Label(row, text="Fecha (AAAA-MM-DD):").pack(side="left")
        self.var_date = StringVar(value=selection.day.isoformat() if selection.day else "")
        entry = ttk.Entry(row, textvariable=self.var_date, width=14)
        entry.pack(side="left", padx=(5, 5))
        entry.bind("<Return>", lambda event: self.search())
        ttk.Button(row, text="🔍 Buscar horarios", command=self.search).pack(side="left")

        self.lb_slots = Listbox(self, selectmode=SINGLE, height=6, exportselection=False)
        self.lb_slots.pack(fill=BOTH, expand=True, pady=(5, 0))
        self.lb_slots.bind("<<ListboxSelect>>", self._on_select)

        self.lbl_empty = ttk.Label(self, text="", foreground="red")
        self.lbl_empty.pack(anchor="w")

        self.render()

    def search(self):
        try:
            day = parse_date_input(self.var_date.get())
        except ValidationError as e:
            messagebox.showwarning("Fecha", str(e), parent=self)
            return
        self.run_action(lambda: self.selection.set_date(day), on_success=lambda candidates: self.render())

    def render(self):
        self.lb_slots.delete(0, END)
        for slot in self.selection.candidates:
            self.lb_slots.insert(END, slot.label())

        if self.selection.day and self.selection.professor_id and not self.selection.candidates:
            self.lbl_empty.config(text="No hay horarios disponibles para esta fecha.")
        else:
            self.lbl_empty.config(text="")
        if self.on_change:
            self.on_change()

    def _on_select(self, event=None):
        sel = self.lb_slots.curselection()
        if not sel:
            return
        slot = self.selection.candidates[sel[0]]
        self.selection.select(slot.id)
        if self.on_change:
            self.on_change()


# ===================== LOGIN =====================

class LoginFrame(ttk.Frame, ActionMixin):
    ROLE_CHOICES = [
        (Role.STUDENT, "Estudiante"),
        (Role.PROFESSOR, "Profesor"),
        (Role.DIRECTOR, "Director"),
    ]

    def __init__(self, parent, app):
        super().__init__(parent, padding=30)
        self.app = app

        ttk.Label(self, text="Sistema de Asesorías", font=("Arial", 16, "bold")).grid(
            row=0, column=0, columnspan=2, pady=(0, 15)
        )

        self.var_email = labeled_entry(self, "Correo electrónico:", 1)
        ttk.Label(self, text="Contraseña:").grid(row=2, column=0, sticky="w", pady=2)
        self.var_password = StringVar()
        ent_pwd = ttk.Entry(self, textvariable=self.var_password, show="*", width=30)
        ent_pwd.grid(row=2, column=1, sticky="we", pady=2)
        ent_pwd.bind("<Return>", lambda event: self._login())

        ttk.Label(self, text="Tipo de usuario:").grid(row=3, column=0, sticky="w", pady=2)
        self.var_role = StringVar(value=Role.STUDENT.value)
        frame_roles = ttk.Frame(self)
        frame_roles.grid(row=3, column=1, sticky="w")
        for role, label in self.ROLE_CHOICES:
            ttk.Radiobutton(frame_roles, text=label, value=role.value, variable=self.var_role).pack(side="left")

        self.btn_login = ttk.Button(self, text="Iniciar sesión", command=self._login)
        self.btn_login.grid(row=4, column=0, columnspan=2, pady=(15, 0))

    def _login(self):
        self.run_action(
            lambda: self.app.ctx.login(self.var_email.get(), self.var_password.get(), self.var_role.get()),
            button=self.btn_login,
            on_success=lambda user: self.app.show_dashboard(),
        )


# ===================== DASHBOARD BASE =====================

class Dashboard(ttk.Frame, ActionMixin):
    title = ""

    def __init__(self, parent, app):
        super().__init__(parent, padding=5)
        self.app = app
        self.ctx = app.ctx
        self.user = app.ctx.user

        header = ttk.Frame(self)
        header.pack(fill="x")
        ttk.Label(header, text=f"{self.title} - {self.user.name}", font=("Arial", 13, "bold")).pack(side="left")
        ttk.Button(header, text="🚪 Cerrar sesión", command=self.app.logout).pack(side="right")
        self.btn_reload = ttk.Button(header, text="🔄 Actualizar", command=self._reload)
        self.btn_reload.pack(side="right", padx=(0, 5))

        self.notebook = ttk.Notebook(self)
        self.notebook.pack(fill=BOTH, expand=True, pady=(5, 0))

        self.build_tabs()
        self.refresh()

    def build_tabs(self):
        raise NotImplementedError

    def refresh(self):
        raise NotImplementedError

    def add_tab(self, text):
        frame = ttk.Frame(self.notebook, padding=8)
        self.notebook.add(frame, text=text)
        return frame

    def _reload(self):
        self.run_action(self.ctx.load_data, button=self.btn_reload, on_success=lambda store: self.refresh())

    @property
    def requests(self):
        return visible_requests(self.user, self.ctx.store.requests)


# ===================== ESTUDIANTE =====================

class StudentDashboard(Dashboard):
    title = "Panel del Estudiante"

    def build_tabs(self):
        self.tab_new = self.add_tab("Solicitar Asesoría")
        self.tab_mine = self.add_tab("Mis Solicitudes")
        self.tab_history = self.add_tab("Historial")
        self._build_new_request()

        frame, self.tree_mine = make_tree(self.tab_mine, REQUEST_COLUMNS)
        frame.pack(fill=BOTH, expand=True)
        frame, self.tree_history = make_tree(self.tab_history, REQUEST_COLUMNS)
        frame.pack(fill=BOTH, expand=True)

    def _build_new_request(self):
        form = ttk.Frame(self.tab_new)
        form.pack(fill=BOTH, expand=True)
        form.columnconfigure(1, weight=1)

        ttk.Label(form, text="Profesor:").grid(row=0, column=0, sticky="w", pady=2)
        self.cmb_professor = ttk.Combobox(form, state="readonly")
        self.cmb_professor.grid(row=0, column=1, sticky="we", pady=2)
        self.cmb_professor.bind("<<ComboboxSelected>>", self._on_professor_changed)

        self.selection = SlotSelection(self.ctx.availability)
        self.slot_picker = SlotPicker(form, self.app, self.selection)
        self.slot_picker.grid(row=1, column=0, columnspan=2, sticky="nsew", pady=5)

        self.var_subject = labeled_entry(form, "Materia:", 2)
        self.var_topic = labeled_entry(form, "Tema:", 3)

        ttk.Label(form, text="Tipo:").grid(row=4, column=0, sticky="w", pady=2)
        self.var_type = StringVar(value=AdvisoryType.INDIVIDUAL.value)
        frame_type = ttk.Frame(form)
        frame_type.grid(row=4, column=1, sticky="w")
        for t in AdvisoryType:
            ttk.Radiobutton(frame_type, text=TYPE_LABELS[t], value=t.value, variable=self.var_type).pack(side="left")

        ttk.Label(form, text="Descripción:").grid(row=5, column=0, sticky="nw", pady=2)
        self.txt_description = Text(form, height=4, wrap="word")
        self.txt_description.grid(row=5, column=1, sticky="we", pady=2)

        self.btn_submit = ttk.Button(form, text="📨 Enviar solicitud", command=self._submit)
        self.btn_submit.grid(row=6, column=1, sticky="e", pady=(8, 0))

    def _on_professor_changed(self, event=None):
        idx = self.cmb_professor.current()
        professors = self.ctx.store.professors
        professor_id = professors[idx].id if 0 <= idx < len(professors) else None
        self.run_action(
            lambda: self.selection.set_professor(professor_id),
            on_success=lambda candidates: self.slot_picker.render(),
        )

    def _submit(self):
        def send():
            return self.ctx.lifecycle.create_request(
                self.selection,
                self.var_subject.get(),
                self.var_topic.get(),
                self.var_type.get(),
                self.txt_description.get("1.0", END),
            )

        def done(created):
            messagebox.showinfo("Solicitud enviada", "Tu solicitud fue enviada al profesor.", parent=self)
            self.var_subject.set("")
            self.var_topic.set("")
            self.txt_description.delete("1.0", END)
            self.selection.refresh()
            self.slot_picker.render()
            self.refresh()

        self.run_action(send, button=self.btn_submit, on_success=done)

    def refresh(self):
        self.cmb_professor["values"] = [p.name for p in self.ctx.store.professors]
        student_id = self.user.student_id
        fill_tree(self.tree_mine, [request_row(r) for r in requests_for_student(self.requests, student_id)])
        fill_tree(self.tree_history, [request_row(r) for r in history_for_student(self.requests, student_id)])

        badge = answered_count(self.requests, student_id)
        self.notebook.tab(self.tab_mine, text=f"Mis Solicitudes ({badge})" if badge else "Mis Solicitudes")


# ===================== PROFESOR =====================

class ProfessorDashboard(Dashboard):
    title = "Panel del Profesor"

    def build_tabs(self):
        self.tab_pending = self.add_tab("Solicitudes Pendientes")
        self.tab_scheduled = self.add_tab("Asesorías Programadas")
        self.tab_schedules = self.add_tab("Mis Horarios")
        self.tab_manual = self.add_tab("Registrar Asesoría")
        self.tab_history = self.add_tab("Historial")
        self.tab_reports = self.add_tab("Reportes")

        self._build_pending()
        self._build_scheduled()
        self._build_schedules()
        self._build_manual()
        self._build_history()
        self._build_reports()

    @property
    def professor_id(self):
        return self.user.professor_id

    # ---------- pendientes ----------

    def _build_pending(self):
        frame, self.tree_pending = make_tree(self.tab_pending, REQUEST_COLUMNS)
        frame.pack(fill=BOTH, expand=True)

        btns = ttk.Frame(self.tab_pending)
        btns.pack(fill="x", pady=(5, 0))
        self.btn_accept = ttk.Button(btns, text="✅ Aceptar", command=self._accept)
        self.btn_accept.pack(side="left")
        self.btn_reject = ttk.Button(btns, text="❌ Rechazar", command=self._reject)
        self.btn_reject.pack(side="left", padx=(5, 0))

    def _selected_request(self, tree):
        request_id = selected_id(tree)
        if request_id is None:
            messagebox.showinfo("Sin selección", "Selecciona una solicitud.", parent=self)
        return request_id

    def _accept(self):
        request_id = self._selected_request(self.tree_pending)
        if request_id is None:
            return
        self.run_action(
            lambda: self.ctx.lifecycle.accept(request_id),
            button=self.btn_accept,
            on_success=lambda r: self.refresh(),
        )

    def _ask_motive(self, title, prompt):
        return simpledialog.askstring(title, prompt, parent=self)

    def _reject(self):
        request_id = self._selected_request(self.tree_pending)
        if request_id is None:
            return
        motive = self._ask_motive("Rechazar solicitud", "Motivo del rechazo:")
        if motive is None:
            return
        self.run_action(
            lambda: self.ctx.lifecycle.reject(request_id, motive),
            button=self.btn_reject,
            on_success=lambda r: self.refresh(),
        )

    # ---------- programadas ----------

    def _build_scheduled(self):
        frame, self.tree_scheduled = make_tree(self.tab_scheduled, REQUEST_COLUMNS)
        frame.pack(fill=BOTH, expand=True)

        btns = ttk.Frame(self.tab_scheduled)
        btns.pack(fill="x", pady=(5, 0))
        ttk.Button(btns, text="📅 Reprogramar", command=self._reschedule).pack(side="left")
        ttk.Button(btns, text="✔ Completar", command=self._complete).pack(side="left", padx=(5, 0))
        self.btn_cancel = ttk.Button(btns, text="🚫 Cancelar", command=self._cancel)
        self.btn_cancel.pack(side="left", padx=(5, 0))

    def _reschedule(self):
        request_id = self._selected_request(self.tree_scheduled)
        if request_id is None:
            return
        # los candidatos se piden antes de abrir el modal
        self.run_action(
            lambda: RescheduleDraft(self.ctx.availability, self.ctx.lifecycle.get(request_id)),
            on_success=lambda draft: RescheduleDialog(self, self.app, draft, on_done=self.refresh),
        )

    def _complete(self):
        request_id = self._selected_request(self.tree_scheduled)
        if request_id is None:
            return
        CompleteDialog(self, self.app, self.ctx.lifecycle.get(request_id), on_done=self.refresh)

    def _cancel(self):
        request_id = self._selected_request(self.tree_scheduled)
        if request_id is None:
            return
        motive = self._ask_motive("Cancelar asesoría", "Motivo de la cancelación:")
        if motive is None:
            return
        self.run_action(
            lambda: self.ctx.lifecycle.cancel(request_id, motive),
            button=self.btn_cancel,
            on_success=lambda r: self.refresh(),
        )

    # ---------- horarios ----------

    def _build_schedules(self):
        frame, self.tree_windows = make_tree(self.tab_schedules, [
            ("day", "Día", 110),
            ("start", "Inicio", 80),
            ("end", "Fin", 80),
            ("available", "Disponible", 90),
        ])
        frame.pack(fill=BOTH, expand=True)

        btns = ttk.Frame(self.tab_schedules)
        btns.pack(fill="x", pady=(5, 5))
        self.btn_toggle = ttk.Button(btns, text="⏯ Pausar / Activar", command=self._toggle_window)
        self.btn_toggle.pack(side="left")
        self.btn_delete_window = ttk.Button(btns, text="🗑 Eliminar", command=self._delete_window)
        self.btn_delete_window.pack(side="left", padx=(5, 0))

        form = ttk.LabelFrame(self.tab_schedules, text="Agregar horario", padding=5)
        form.pack(fill="x")
        hours = hour_options()

        ttk.Label(form, text="Día:").pack(side="left")
        self.cmb_day = ttk.Combobox(form, state="readonly", width=12, values=[d.label for d in DayOfWeek])
        self.cmb_day.pack(side="left", padx=(5, 10))
        ttk.Label(form, text="Inicio:").pack(side="left")
        self.cmb_start = ttk.Combobox(form, state="readonly", width=7, values=hours)
        self.cmb_start.pack(side="left", padx=(5, 10))
        ttk.Label(form, text="Fin:").pack(side="left")
        self.cmb_end = ttk.Combobox(form, state="readonly", width=7, values=hours + ["19:00"])
        self.cmb_end.pack(side="left", padx=(5, 10))
        self.btn_add_window = ttk.Button(form, text="➕ Agregar", command=self._add_window)
        self.btn_add_window.pack(side="left")

    def _add_window(self):
        idx = self.cmb_day.current()
        day = list(DayOfWeek)[idx] if idx >= 0 else None
        self.run_action(
            lambda: self.ctx.availability.add_window(
                self.professor_id, day, self.cmb_start.get(), self.cmb_end.get()
            ),
            button=self.btn_add_window,
            on_success=lambda w: self.refresh(),
        )

    def _delete_window(self):
        window_id = selected_id(self.tree_windows)
        if window_id is None:
            messagebox.showinfo("Sin selección", "Selecciona un horario.", parent=self)
            return
        confirmed = messagebox.askyesno(
            "Eliminar horario",
            "¿Estás seguro de eliminar este horario?",
            parent=self,
        )
        self.run_action(
            lambda: self.ctx.availability.remove_window(self.professor_id, window_id, confirmed),
            button=self.btn_delete_window,
            on_success=lambda removed: self.refresh(),
        )

    def _toggle_window(self):
        window_id = selected_id(self.tree_windows)
        if window_id is None:
            messagebox.showinfo("Sin selección", "Selecciona un horario.", parent=self)
            return
        # los fallos sólo quedan en el log
        self.run_action(
            lambda: self.ctx.availability.toggle_availability(self.professor_id, window_id),
            button=self.btn_toggle,
            on_success=lambda ok: self.refresh(),
        )

    # ---------- registro manual ----------

    def _build_manual(self):
        form = self.tab_manual
        form.columnconfigure(1, weight=1)
        self.var_m_date = labeled_entry(form, "Fecha (AAAA-MM-DD):", 0, width=14)

        hours = hour_options()
        ttk.Label(form, text="Hora inicio:").grid(row=1, column=0, sticky="w", pady=2)
        self.cmb_m_start = ttk.Combobox(form, state="readonly", width=7, values=hours)
        self.cmb_m_start.grid(row=1, column=1, sticky="w", pady=2)
        ttk.Label(form, text="Hora fin:").grid(row=2, column=0, sticky="w", pady=2)
        self.cmb_m_end = ttk.Combobox(form, state="readonly", width=7, values=hours + ["19:00"])
        self.cmb_m_end.grid(row=2, column=1, sticky="w", pady=2)

        self.var_m_student = labeled_entry(form, "Nombre del estudiante:", 3)
        self.var_m_email = labeled_entry(form, "Correo del estudiante:", 4)
        self.var_m_subject = labeled_entry(form, "Materia:", 5)
        self.var_m_topic = labeled_entry(form, "Tema:", 6)

        ttk.Label(form, text="Tipo:").grid(row=7, column=0, sticky="w", pady=2)
        self.var_m_type = StringVar(value=AdvisoryType.INDIVIDUAL.value)
        frame_type = ttk.Frame(form)
        frame_type.grid(row=7, column=1, sticky="w")
        for t in AdvisoryType:
            ttk.Radiobutton(frame_type, text=TYPE_LABELS[t], value=t.value, variable=self.var_m_type).pack(side="left")

        ttk.Label(form, text="Descripción:").grid(row=8, column=0, sticky="nw", pady=2)
        self.txt_m_description = Text(form, height=4, wrap="word")
        self.txt_m_description.grid(row=8, column=1, sticky="we", pady=2)

        self.btn_manual = ttk.Button(form, text="💾 Registrar asesoría", command=self._register_manual)
        self.btn_manual.grid(row=9, column=1, sticky="e", pady=(8, 0))

    def _register_manual(self):
        def send():
            return self.ctx.lifecycle.register_manual(
                parse_date_input(self.var_m_date.get()),
                self.cmb_m_start.get(),
                self.cmb_m_end.get(),
                self.var_m_subject.get(),
                self.var_m_topic.get(),
                self.var_m_student.get(),
                self.var_m_type.get(),
                self.txt_m_description.get("1.0", END),
                self.var_m_email.get(),
            )

        def done(created):
            messagebox.showinfo("Registrada", "Asesoría registrada exitosamente.", parent=self)
            for var in (self.var_m_date, self.var_m_student, self.var_m_email, self.var_m_subject, self.var_m_topic):
                var.set("")
            self.txt_m_description.delete("1.0", END)
            self.refresh()

        self.run_action(send, button=self.btn_manual, on_success=done)

    # ---------- historial ----------

    def _build_history(self):
        frame, self.tree_history = make_tree(self.tab_history, REQUEST_COLUMNS)
        frame.pack(fill=BOTH, expand=True)

        form = ttk.LabelFrame(self.tab_history, text="Exportar historial", padding=5)
        form.pack(fill="x", pady=(5, 0))
        ttk.Label(form, text="Periodo:").pack(side="left")
        self.var_period = StringVar()
        ttk.Entry(form, textvariable=self.var_period, width=20).pack(side="left", padx=(5, 10))
        ttk.Label(form, text="Desde:").pack(side="left")
        self.var_h_start = StringVar()
        ttk.Entry(form, textvariable=self.var_h_start, width=12).pack(side="left", padx=(5, 10))
        ttk.Label(form, text="Hasta:").pack(side="left")
        self.var_h_end = StringVar()
        ttk.Entry(form, textvariable=self.var_h_end, width=12).pack(side="left", padx=(5, 10))
        self.btn_export = ttk.Button(form, text="📄 Generar reporte", command=self._export_history)
        self.btn_export.pack(side="right")

    def _export_history(self):
        def build():
            return build_history_report(
                history_for_professor(self.requests, self.professor_id),
                self.user.name,
                output_dir=self.ctx.reports_dir,
                start=parse_date_input(self.var_h_start.get()),
                end=parse_date_input(self.var_h_end.get()),
                period=self.var_period.get(),
            )

        def done(path):
            if messagebox.askyesno(
                "Reporte generado",
                f"Se generó el reporte:\n{path}\n\n¿Deseas abrirlo ahora?",
                parent=self,
            ):
                webbrowser.open(Path(path).resolve().as_uri())

        self.run_action(build, button=self.btn_export, on_success=done)

    # ---------- reportes ----------

    def _build_reports(self):
        form = ttk.Frame(self.tab_reports)
        form.pack(fill="x")
        ttk.Label(form, text="Desde:").pack(side="left")
        self.var_r_start = StringVar()
        ttk.Entry(form, textvariable=self.var_r_start, width=12).pack(side="left", padx=(5, 10))
        ttk.Label(form, text="Hasta:").pack(side="left")
        self.var_r_end = StringVar()
        ttk.Entry(form, textvariable=self.var_r_end, width=12).pack(side="left", padx=(5, 10))
        ttk.Button(form, text="📊 Calcular", command=self._render_stats).pack(side="left")

        self.txt_stats = Text(self.tab_reports, height=20, wrap="word", state="disabled")
        self.txt_stats.pack(fill=BOTH, expand=True, pady=(5, 0))

    def _render_stats(self):
        try:
            start = parse_date_input(self.var_r_start.get())
            end = parse_date_input(self.var_r_end.get())
        except ValidationError as e:
            messagebox.showwarning("Fecha", str(e), parent=self)
            return
        stats = professor_stats(self.requests, self.professor_id, start, end)

        lines = [
            f"Asesorías completadas: {stats['completed']}",
            f"Estudiantes atendidos: {stats['students']}",
            f"Materias: {stats['subjects']}",
            f"Tasa de aceptación: {stats['acceptance_rate']}%",
            "",
            "Por materia:",
        ]
        lines += [f"  {k}: {v}" for k, v in stats["by_subject"].items()] or ["  -"]
        lines += ["", "Por tipo:"]
        lines += [f"  {k}: {v}" for k, v in stats["by_type"].items()] or ["  -"]
        lines += ["", "Por mes:"]
        lines += [f"  {k}: {v}" for k, v in stats["by_month"].items()] or ["  -"]

        self.txt_stats.config(state="normal")
        self.txt_stats.delete("1.0", END)
        self.txt_stats.insert(END, "\n".join(lines))
        self.txt_stats.config(state="disabled")

    # ---------- refresco ----------

    def refresh(self):
        pid = self.professor_id
        pending = pending_for_professor(self.requests, pid)
        fill_tree(self.tree_pending, [request_row(r) for r in pending])
        fill_tree(self.tree_scheduled, [request_row(r) for r in scheduled_for_professor(self.requests, pid)])
        fill_tree(self.tree_history, [request_row(r) for r in history_for_professor(self.requests, pid)])
        self.notebook.tab(
            self.tab_pending,
            text=f"Solicitudes Pendientes ({len(pending)})" if pending else "Solicitudes Pendientes",
        )

        windows = sorted(
            self.ctx.availability.windows_for(pid),
            key=lambda w: (list(DayOfWeek).index(w.day_of_week), w.start_time),
        )
        fill_tree(self.tree_windows, [
            (w.id, (w.day_of_week.label, w.start_time, w.end_time, "Sí" if w.is_available else "No"))
            for w in windows
        ])
        self._render_stats()


# ===================== DIRECTOR =====================

class DirectorDashboard(Dashboard):
    title = "Panel del Director"

    def build_tabs(self):
        self.tab_history = self.add_tab("Historial General")
        self.tab_reports = self.add_tab("Reportes")
        self._build_history()
        self._build_reports()

    def _build_history(self):
        filters = ttk.Frame(self.tab_history)
        filters.pack(fill="x", pady=(0, 5))
        ttk.Label(filters, text="Buscar:").pack(side="left")
        self.var_search = StringVar()
        self.var_search.trace_add("write", lambda *args: self.refresh())
        ttk.Entry(filters, textvariable=self.var_search, width=30).pack(side="left", padx=(5, 10))

        ttk.Label(filters, text="Estado:").pack(side="left")
        self.cmb_status = ttk.Combobox(
            filters, state="readonly", width=14,
            values=[ALL_STATUSES] + [STATUS_LABELS[s] for s in Status],
        )
        self.cmb_status.current(0)
        self.cmb_status.pack(side="left", padx=(5, 0))
        self.cmb_status.bind("<<ComboboxSelected>>", lambda event: self.refresh())

        self.lbl_stats = ttk.Label(self.tab_history, text="")
        self.lbl_stats.pack(anchor="w", pady=(0, 5))

        columns = REQUEST_COLUMNS[:2] + [("professor", "Profesor", 160)] + REQUEST_COLUMNS[2:]
        frame, self.tree_history = make_tree(self.tab_history, columns)
        frame.pack(fill=BOTH, expand=True)

    def _build_reports(self):
        form = self.tab_reports
        self.var_p_start = labeled_entry(form, "Fecha inicio (AAAA-MM-DD):", 0, width=14)
        self.var_p_end = labeled_entry(form, "Fecha fin (AAAA-MM-DD):", 1, width=14)
        ttk.Label(form, text="Profesor:").grid(row=2, column=0, sticky="w", pady=2)
        self.cmb_report_professor = ttk.Combobox(form, state="readonly", width=30)
        self.cmb_report_professor.grid(row=2, column=1, sticky="w", pady=2)
        self.btn_pdf = ttk.Button(form, text="📥 Descargar PDF", command=self._download_pdf)
        self.btn_pdf.grid(row=3, column=1, sticky="w", pady=(8, 0))

    def _selected_status(self):
        idx = self.cmb_status.current()
        return list(Status)[idx - 1] if idx > 0 else None

    def _download_pdf(self):
        def fetch():
            idx = self.cmb_report_professor.current()
            professors = self.ctx.store.professors
            professor = professors[idx - 1] if 0 < idx <= len(professors) else None
            return download_advisory_report(
                self.ctx.api,
                parse_date_input(self.var_p_start.get()),
                parse_date_input(self.var_p_end.get()),
                professor,
                output_dir=self.ctx.reports_dir,
            )

        def done(path):
            messagebox.showinfo(
                "Reporte",
                f"Reporte generado y descargado exitosamente:\n{path}",
                parent=self,
            )

        self.run_action(fetch, button=self.btn_pdf, on_success=done)

    def refresh(self):
        data = filter_director_history(self.requests, self.var_search.get(), self._selected_status())
        rows = []
        for r in data:
            iid, values = request_row(r)
            rows.append((iid, values[:2] + (r.professor_name,) + values[2:]))
        fill_tree(self.tree_history, rows)

        stats = director_stats(self.requests)
        self.lbl_stats.config(
            text=(
                f"Total: {stats['total']}   Completadas: {stats['completed']}   "
                f"Aceptadas: {stats['accepted']}   Profesores: {stats['professors']}"
            )
        )

        names = [ALL_PROFESSORS] + [p.name for p in self.ctx.store.professors]
        self.cmb_report_professor["values"] = names
        if self.cmb_report_professor.current() < 0:
            self.cmb_report_professor.current(0)


DASHBOARDS = {
    Role.STUDENT: StudentDashboard,
    Role.PROFESSOR: ProfessorDashboard,
    Role.DIRECTOR: DirectorDashboard,
}


# ===================== DIÁLOGOS =====================

class RequestDialog(Toplevel, ActionMixin):
    def __init__(self, parent, app, request, title, on_done=None):
        super().__init__(parent)
        self.app = app
        self.request = request
        self.on_done = on_done
        self.title(title)
        self.resizable(False, False)

        info = (
            f"{request.student_name} - {request.subject}\n"
            f"{format_date(request.date)} {request.time_slot} ({status_label(request.status)})"
        )
        ttk.Label(self, text=info, padding=10).pack(anchor="w")

        self.body = ttk.Frame(self, padding=(10, 0, 10, 10))
        self.body.pack(fill=BOTH, expand=True)

        self.transient(parent)
        self.grab_set()

    def finish(self, updated):
        self.destroy()
        if self.on_done:
            self.on_done()


class RescheduleDialog(RequestDialog):
    """El botón Confirmar sólo se habilita con un horario de la lista elegido."""

    def __init__(self, parent, app, draft: RescheduleDraft, on_done=None):
        super().__init__(parent, app, draft.request, "Reprogramar asesoría", on_done)
        self.draft = draft

        self.btn_confirm = ttk.Button(self.body, text="Confirmar", command=self._confirm)
        self.picker = SlotPicker(self.body, app, self.draft, on_change=self._update_confirm)
        self.picker.pack(fill=BOTH, expand=True)

        ttk.Label(self.body, text="Motivo:").pack(anchor="w", pady=(5, 0))
        self.var_motive = StringVar()
        ttk.Entry(self.body, textvariable=self.var_motive, width=40).pack(fill="x")

        self.btn_confirm.pack(anchor="e", pady=(8, 0))
        self._update_confirm()

    def _update_confirm(self):
        self.btn_confirm.state(["!disabled"] if self.draft.can_confirm else ["disabled"])

    def _confirm(self):
        self.run_action(
            lambda: self.app.ctx.lifecycle.reschedule(self.draft, self.var_motive.get()),
            button=self.btn_confirm,
            on_success=self.finish,
        )
        if self.winfo_exists():
            self._update_confirm()


class CompleteDialog(RequestDialog):
    def __init__(self, parent, app, request, on_done=None):
        super().__init__(parent, app, request, "Completar asesoría", on_done)
        ttk.Label(self.body, text="Observaciones finales:").pack(anchor="w")
        self.txt_observations = Text(self.body, height=6, width=50, wrap="word")
        self.txt_observations.pack(fill=BOTH, expand=True)
        self.btn_confirm = ttk.Button(self.body, text="Completar", command=self._confirm)
        self.btn_confirm.pack(anchor="e", pady=(8, 0))

    def _confirm(self):
        self.run_action(
            lambda: self.app.ctx.lifecycle.complete(
                self.request.id, self.txt_observations.get("1.0", END)
            ),
            button=self.btn_confirm,
            on_success=self.finish,
        )


# ===================== APP =====================

class AdvisoryApp:
    def __init__(self, root: Tk, ctx: AppContext, base_dir: str):
        self.root = root
        self.ctx = ctx
        self.root.title("Sistema de Asesorías")
        self.root.geometry("1200x700")

        icon_path = os.path.join(base_dir, "app.ico")
        if os.path.exists(icon_path):
            try:
                self.root.iconbitmap(default=icon_path)
            except TclError as e:
                logger.warning("No se pudo establecer el icono: %s", e)

        self.current = None
        if ctx.restore():
            self.show_dashboard()
        else:
            self.show_login()

    def _swap(self, frame):
        if self.current is not None:
            self.current.destroy()
        self.current = frame
        frame.pack(fill=BOTH, expand=True)

    def show_login(self):
        self._swap(LoginFrame(self.root, self))

    def show_dashboard(self):
        try:
            self.ctx.load_data()
        except SessionExpiredError:
            self.session_expired()
            return
        dashboard_cls = DASHBOARDS[self.ctx.role]
        self._swap(dashboard_cls(self.root, self))

    def logout(self):
        self.ctx.logout()
        self.show_login()

    def session_expired(self):
        messagebox.showwarning(
            "Sesión expirada",
            "Tu sesión expiró. Inicia sesión nuevamente.",
            parent=self.root,
        )
        self.logout()


def main():
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    base_dir = os.path.dirname(os.path.abspath(sys.argv[0]))
    config = load_config(os.path.join(base_dir, "config.json"))
    ctx = AppContext.from_config(config, base_dir)

    root = Tk()
    AdvisoryApp(root, ctx, base_dir)
    root.mainloop()


if __name__ == "__main__":
    main()
