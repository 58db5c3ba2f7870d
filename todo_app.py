"""Today's Tasks: a single-screen to-do list using PySide6 + QML.

Features:
- Add short text tasks from the input at the bottom
- Click a task to mark it done, press and hold to edit it in place
- Remove single tasks or clear every finished one at once
- Tasks are saved locally and restored on the next launch
"""

import argparse
import sys
from typing import List, Optional

from PySide6.QtGui import QGuiApplication
from PySide6.QtQml import QQmlApplicationEngine

from todo_model import TodoModel
from todo_store import (
    SETTINGS_APPLICATION,
    SETTINGS_ORGANIZATION,
    JsonFileStore,
    KeyValueStore,
    MemoryStore,
    SettingsStore,
)


QML_UI = rb"""
import QtQuick 2.15
import QtQuick.Controls 2.15
import QtQuick.Layouts 1.15

ApplicationWindow {
    id: root
    visible: true
    width: 420
    height: 720
    title: "Today's tasks"
    color: "#e3d9d9"

    function addFromInput() {
        if (todoModel.addTask(taskInput.text) !== "")
            taskInput.text = ""
    }

    Connections {
        target: todoModel
        function onStorageError(message) {
            errorBanner.text = message
            errorBanner.visible = true
            bannerTimer.restart()
        }
    }

    Timer {
        id: bannerTimer
        interval: 4000
        onTriggered: errorBanner.visible = false
    }

    ColumnLayout {
        anchors.fill: parent
        anchors.topMargin: 40
        anchors.leftMargin: 20
        anchors.rightMargin: 20
        anchors.bottomMargin: 30
        spacing: 8

        Label {
            text: "Today's tasks"
            font.pixelSize: 24
            font.bold: true
        }

        RowLayout {
            Layout.fillWidth: true

            Label {
                text: "Total: " + todoModel.taskCount + " | Done: " + todoModel.completedCount
                font.pixelSize: 12
                opacity: 0.6
                Layout.fillWidth: true
            }

            Label {
                text: "Clear done"
                font.pixelSize: 12
                color: "#dd0000"
                opacity: todoModel.hasCompleted ? 1.0 : 0.3

                MouseArea {
                    anchors.fill: parent
                    enabled: todoModel.hasCompleted
                    onClicked: todoModel.clearCompleted()
                }
            }
        }

        Label {
            id: errorBanner
            visible: false
            color: "#8a1c1c"
            font.pixelSize: 11
            wrapMode: Text.WordWrap
            Layout.fillWidth: true
        }

        ListView {
            id: taskList
            model: todoModel
            clip: true
            spacing: 12
            Layout.fillWidth: true
            Layout.fillHeight: true

            Label {
                anchors.horizontalCenter: parent.horizontalCenter
                y: 40
                visible: taskList.count === 0
                text: "No tasks yet. Add one below."
                color: "#555555"
                opacity: 0.5
            }

            delegate: RowLayout {
                width: ListView.view.width
                spacing: 10

                Rectangle {
                    Layout.fillWidth: true
                    implicitHeight: 48
                    radius: 10
                    color: model.completed ? "#d1ffd6" : "#ffffff"

                    Label {
                        anchors.fill: parent
                        anchors.margins: 15
                        visible: !model.editing
                        text: model.text
                        elide: Text.ElideRight
                        verticalAlignment: Text.AlignVCenter
                        color: model.completed ? "#888888" : "#000000"
                        font.strikeout: model.completed
                    }

                    MouseArea {
                        anchors.fill: parent
                        enabled: !model.editing
                        onClicked: todoModel.toggleComplete(model.taskId)
                        onPressAndHold: todoModel.startEdit(model.taskId)
                    }

                    Loader {
                        anchors.fill: parent
                        active: model.editing
                        sourceComponent: TextField {
                            Component.onCompleted: {
                                text = todoModel.editDraft
                                forceActiveFocus()
                            }
                            onTextEdited: todoModel.updateDraft(text)
                            onAccepted: todoModel.confirmEdit()
                            onActiveFocusChanged: if (!activeFocus) todoModel.confirmEdit()
                            Keys.onEscapePressed: todoModel.cancelEdit()
                        }
                    }
                }

                Button {
                    text: "\u2715"
                    implicitWidth: 40
                    implicitHeight: 40
                    onClicked: todoModel.removeTask(model.taskId)
                }
            }
        }

        RowLayout {
            Layout.fillWidth: true
            spacing: 12

            TextField {
                id: taskInput
                placeholderText: "Write a task"
                Layout.fillWidth: true
                onAccepted: root.addFromInput()
            }

            Button {
                text: "+"
                font.pixelSize: 22
                implicitWidth: 60
                implicitHeight: 60
                onClicked: root.addFromInput()
            }
        }
    }
}
"""


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Today's tasks to-do list.")
    group = parser.add_mutually_exclusive_group()
    group.add_argument(
        "--data-dir",
        help="Keep tasks in a JSON file inside this directory instead of the system settings.",
    )
    group.add_argument(
        "--ephemeral",
        action="store_true",
        help="Keep tasks in memory only; nothing is saved.",
    )
    return parser.parse_args(argv)


def build_store(args: argparse.Namespace) -> KeyValueStore:
    """Pick the persistent store selected on the command line."""
    if args.ephemeral:
        return MemoryStore()
    if args.data_dir:
        return JsonFileStore(args.data_dir)
    return SettingsStore(SETTINGS_ORGANIZATION, SETTINGS_APPLICATION)


def create_todo_window(model: TodoModel) -> QQmlApplicationEngine:
    """Load the QML UI bound to ``model``; the caller keeps the engine alive."""
    engine = QQmlApplicationEngine()
    engine.rootContext().setContextProperty("todoModel", model)
    engine.loadData(QML_UI)
    return engine


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    app = QGuiApplication(sys.argv[:1])
    app.setOrganizationName(SETTINGS_ORGANIZATION)
    app.setApplicationName(SETTINGS_APPLICATION)

    model = TodoModel(build_store(args))
    model.load()
    app.aboutToQuit.connect(model.flushPendingSave)

    engine = create_todo_window(model)
    if not engine.rootObjects():
        return 1
    return app.exec()


if __name__ == "__main__":
    sys.exit(main())
